"""Database URI and engine options."""
import os

DEFAULT_DATABASE_URI = "sqlite:///facilityops.sqlite"


def get_postgres_engine_options():
    """Pool settings for PostgreSQL; request handlers and the worker thread share the pool."""
    from sqlalchemy.pool import QueuePool

    return {
        "pool_pre_ping": True,
        "pool_recycle": 280,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "poolclass": QueuePool,
        "connect_args": {
            "connect_timeout": 10,
            "application_name": "facilityops",
        },
    }


def get_database_config():
    """
    Returns:
        tuple: (database_uri, engine_options or None)
    """
    database_uri = os.environ.get("DATABASE_URL") or DEFAULT_DATABASE_URI
    # Heroku-style URLs still use the legacy scheme
    if database_uri.startswith("postgres://"):
        database_uri = "postgresql://" + database_uri[len("postgres://"):]

    if database_uri.startswith("postgresql"):
        return database_uri, get_postgres_engine_options()
    return database_uri, None


def configure_database(app):
    """Fill in SQLALCHEMY_DATABASE_URI unless an override already set one."""
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config.setdefault("SQLALCHEMY_ECHO", False)

    if app.config.get("SQLALCHEMY_DATABASE_URI"):
        return

    database_uri, engine_options = get_database_config()
    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
    if engine_options:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options

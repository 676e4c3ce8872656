import atexit
import os

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from flask import Flask
from flask_cors import CORS

from facilityops.logging_config import configure_logging, get_logger
from facilityops.models import db

logger = get_logger(__name__)


def init_scheduler(app):
    """Run the notification worker inside this process on a background thread.

    Only enabled with RUN_NOTIFICATION_WORKER; the outbox assumes a single
    consumer, so enable it on exactly one process (or use run_worker.py).
    With USE_RELOADER the job starts in the reloaded child only.
    """
    from facilityops.notifications.worker import NotificationWorker

    if not app.config.get("RUN_NOTIFICATION_WORKER"):
        logger.info("Notification worker not started in this process")
        return None

    # --- Prevent a second scheduler under the werkzeug reloader parent ---
    if app.config.get("USE_RELOADER") and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        logger.info("Skipping scheduler startup in reloader parent")
        return None

    worker = NotificationWorker(app)
    scheduler = BackgroundScheduler(executors={"default": ThreadPoolExecutor(1)})
    scheduler.add_job(
        func=worker.tick_in_context,
        trigger="interval",
        seconds=worker.poll_interval,
        id="notification_worker",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    atexit.register(lambda: scheduler.shutdown(wait=False))

    logger.info("Scheduler started (notification worker)",
                poll_interval=worker.poll_interval,
                claim_limit=worker.claim_limit)
    return scheduler


def create_app(overrides=None):
    """
    Application factory.

    Args:
        overrides: optional dict applied on top of the environment config
                   before the database is initialized (tests pass
                   SQLALCHEMY_DATABASE_URI here)
    """
    from facilityops.api import api_bp
    from facilityops.api.helpers import register_error_handlers
    from facilityops.cli import register_cli
    from facilityops.config import get_config
    from facilityops.db_config import configure_database

    config_class = get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    configure_logging(log_level=app.config.get("LOG_LEVEL", "INFO"), log_file=app.config.get("LOG_FILE"))
    configure_database(app)
    app.config["UPLOAD_DIR"] = os.path.abspath(app.config["UPLOAD_DIR"])

    logger.info(f"Starting application in {config_class.ENV} environment")
    logger.info(f"Database URI: {app.config.get('SQLALCHEMY_DATABASE_URI', 'Not set')[:50]}...")

    allowed_origins = app.config.get("CORS_ORIGINS", "*")
    if allowed_origins != "*":
        allowed_origins = [origin.strip() for origin in allowed_origins.split(",")]

    CORS(app,
         resources={r"/*": {"origins": allowed_origins}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"])

    db.init_app(app)

    app.register_blueprint(api_bp)
    register_error_handlers(app)
    register_cli(app)

    if not app.config.get("TESTING"):
        app.extensions["notification_scheduler"] = init_scheduler(app)

    return app

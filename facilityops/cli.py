"""Flask CLI commands: ``flask --app facilityops init-db`` and ``flask --app facilityops seed-demo``."""
import click
from werkzeug.security import generate_password_hash

from facilityops.logging_config import get_logger
from facilityops.models import Organization, Role, Site, User, db

logger = get_logger(__name__)


def seed_demo_data():
    """
    Create a demo organization with one site and one GM, unless any organization exists.

    Returns:
        Organization or None if data was already present
    """
    if Organization.query.first():
        logger.info("Organizations already present, skipping demo seed")
        return None

    org = Organization(name="Demo Org", timezone="America/Boise")
    db.session.add(org)
    db.session.flush()

    db.session.add(Site(organization_id=org.id, name="Demo Airport", address="123 Runway Rd"))
    db.session.add(User(
        organization_id=org.id,
        role=Role.GM,
        full_name="Demo GM",
        email="gm@demo.com",
        phone="+15555550100",
        password_hash=generate_password_hash("DemoPass123!", method='pbkdf2:sha256'),
    ))
    db.session.commit()

    logger.info("Created Demo Org + site + GM user", email="gm@demo.com")
    return org


def register_cli(app):

    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Create the demo organization, site and GM user."""
        org = seed_demo_data()
        if org:
            click.echo("Created Demo Org + site + GM user: gm@demo.com / DemoPass123!")
        else:
            click.echo("Data already present, nothing seeded.")

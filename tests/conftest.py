"""
Shared fixtures: a Flask app on in-memory SQLite plus a small organization
with one GM and two contractors.
"""
import pytest

from facilityops import create_app
from facilityops.auth.identity import Identity
from facilityops.lifecycle import CreateWorkOrderCommand
from facilityops.models import Organization, Role, Site, User, db


@pytest.fixture
def app(tmp_path):
    """Create Flask application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SECRET_KEY': 'test-secret-key',
        'APP_BASE_URL': 'https://ops.example.com',
        'UPLOAD_DIR': str(tmp_path / 'uploads'),
        'RUN_NOTIFICATION_WORKER': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(org, role, name, phone=None, is_active=True):
    user = User(
        organization_id=org.id,
        role=role,
        full_name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        phone=phone,
        password_hash="not-a-real-hash",
        is_active=is_active,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def org(app):
    org = Organization(name="Test Org")
    db.session.add(org)
    db.session.commit()
    return org


@pytest.fixture
def other_org(app):
    org = Organization(name="Other Org")
    db.session.add(org)
    db.session.commit()
    return org


@pytest.fixture
def site(org):
    site = Site(organization_id=org.id, name="Hangar 1")
    db.session.add(site)
    db.session.commit()
    return site


@pytest.fixture
def gm_user(org):
    return make_user(org, Role.GM, "Grace Manager", phone="+15555550100")


@pytest.fixture
def contractor(org):
    return make_user(org, Role.CONTRACTOR, "Carl Contractor", phone="+15555550200")


@pytest.fixture
def second_contractor(org):
    return make_user(org, Role.CONTRACTOR, "Dana Fixit", phone="+15555550300")


@pytest.fixture
def gm(gm_user):
    return Identity.from_user(gm_user)


@pytest.fixture
def contractor_identity(contractor):
    return Identity.from_user(contractor)


@pytest.fixture
def work_order(gm, site):
    result = CreateWorkOrderCommand(identity=gm, site_id=site.id, title="Leak", priority="high").execute()
    return result.record


def login(client, user):
    with client.session_transaction() as sess:
        sess['user_id'] = user.id


@pytest.fixture
def user_factory(org):
    """Create users in the test organization (or another one)."""
    def _make(role, name, phone=None, is_active=True, organization=None):
        return make_user(organization or org, role, name, phone=phone, is_active=is_active)
    return _make


@pytest.fixture
def login_as(client):
    """Put a user id into the session the way the login flow would."""
    def _login(user):
        login(client, user)
    return _login

from datetime import datetime

import pytest

from app import create_app
from config import Config
from models import db, Chamber, Facility, Role, User
from scheduling import BookingService, ChamberService, ScheduleProjections, SqlAlchemySchedulingRepository
from security.password import hash_password

PASSWORD = "correct-horse-battery"

# fixed "now" so today's usage counts are deterministic
NOW = datetime(2030, 1, 15, 7, 0)
DAY = datetime(2030, 1, 15)


class TestConfig(Config):
    __test__ = False

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CREATE_TABLES_ON_STARTUP = True
    CSRF_ENABLED = False
    BCRYPT_ROUNDS = 4
    LOG_LEVEL = "WARNING"


def at(hour, minute=0, day=15):
    return datetime(2030, 1, day, hour, minute)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(email, *roles, **fields):
        user = User(email=email, password_hash=hash_password(PASSWORD), **fields)
        user.roles = Role.query.filter(Role.name.in_(roles or ("PATIENT",))).all()
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def world(app, make_user):
    """One facility, two therapy chambers, and one user per role."""
    facility = Facility(name="Riverside Clinic", address="1 River Rd")
    db.session.add(facility)
    db.session.flush()

    c1 = Chamber(facility_id=facility.id, name="C1", type="therapy", floor=1, equipment=["oxygen"])
    c2 = Chamber(facility_id=facility.id, name="C2", type="therapy", floor=2, equipment=[])
    db.session.add_all([c1, c2])
    db.session.commit()

    users = {
        "admin": make_user("admin@example.com", "ADMIN"),
        "doctor": make_user("doctor@example.com", "PROVIDER", specialty="Hyperbaric"),
        "doctor2": make_user("doctor2@example.com", "PROVIDER"),
        "patient": make_user("patient@example.com", "PATIENT"),
        "other": make_user("other@example.com", "PATIENT"),
    }
    return {"facility": facility, "c1": c1, "c2": c2, **users}


@pytest.fixture
def repo(app):
    return SqlAlchemySchedulingRepository(db.session)


@pytest.fixture
def chambers(repo):
    return ChamberService(repo, clock=lambda: NOW)


@pytest.fixture
def bookings(repo, chambers):
    return BookingService(repo, chambers=chambers, clock=lambda: NOW)


@pytest.fixture
def projections(repo):
    return ScheduleProjections(repo)


@pytest.fixture
def login(client):
    def _login(user):
        resp = client.post("/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return client
    return _login

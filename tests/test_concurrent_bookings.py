"""Two creates racing on a file-backed SQLite database."""
import pytest
from sqlalchemy.orm import Session

from app import create_app
from models import Booking, db
from scheduling import BookingService, SqlAlchemySchedulingRepository
from scheduling.errors import PersistenceFailure
from scheduling.types import Actor, CreateBookingRequest, UpdateBookingRequest
from tests.conftest import NOW, TestConfig, at
from tests.fakes import InMemorySchedulingRepository, make_chamber


@pytest.fixture
def app(tmp_path):
    uri = "sqlite:///" + str(tmp_path / "chamberslot.db")

    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = uri
        # fail fast instead of waiting out the default 5s busy timeout
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 0.1}}

    app = create_app(FileConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def rival(app):
    """A second service on its own connection, like a concurrent request."""
    session = Session(db.engine)
    yield BookingService(SqlAlchemySchedulingRepository(session), clock=lambda: NOW)
    session.close()


def request_for(world, start, chamber, doctor, patient):
    return CreateBookingRequest(
        patient_id=world[patient].id,
        doctor_id=world[doctor].id,
        facility_id=world["facility"].id,
        booking_date=start.date(),
        start_time=start,
        duration=60,
        service_type="therapy",
        created_by=world[patient].id,
        chamber_id=world[chamber].id,
    )


@pytest.mark.parametrize("second", [
    {"chamber": "c2", "doctor": "doctor"},
    {"chamber": "c1", "doctor": "doctor2"},
], ids=["same-provider", "same-chamber"])
def test_overlapping_create_cannot_slip_in_before_write(world, repo, bookings, rival, monkeypatch, second):
    mine = request_for(world, at(9), chamber="c1", doctor="doctor", patient="patient")
    theirs = request_for(world, at(9, 30), patient="other", **second)
    outcome = {}
    write = repo.add_booking

    # the rival runs a full create after our conflict check passed, before our insert
    def rival_books_first(booking, entry):
        try:
            outcome["rival"] = rival.create_booking(theirs)
        except PersistenceFailure as exc:
            outcome["rival"] = exc
        return write(booking, entry)

    monkeypatch.setattr(repo, "add_booking", rival_books_first)

    booking = bookings.create_booking(mine)

    assert isinstance(outcome["rival"], PersistenceFailure)
    assert [b.id for b in Booking.query.all()] == [booking.id]


def test_rival_proceeds_once_first_create_commits(world, bookings, rival):
    mine = request_for(world, at(9), chamber="c1", doctor="doctor", patient="patient")
    theirs = request_for(world, at(10), chamber="c1", doctor="doctor2", patient="other")

    bookings.create_booking(mine)
    # reading the saved booking back opened a new transaction
    db.session.commit()

    rival.create_booking(theirs)
    rival.repository.session.commit()

    assert Booking.query.count() == 2


def test_provider_locked_before_chamber():
    repo = InMemorySchedulingRepository(chambers=[make_chamber(1)])
    service = BookingService(repo, clock=lambda: NOW)

    booking = service.create_booking(CreateBookingRequest(
        patient_id=20, doctor_id=10, facility_id=1, booking_date=at(9).date(),
        start_time=at(9), duration=60, service_type="therapy", created_by=20, chamber_id=1,
    ))
    assert repo.locks == [("doctor", 10), ("chamber", 1)]

    repo.locks.clear()
    service.update_booking(booking.id, UpdateBookingRequest(start_time=at(11)), Actor(id=20, role="PATIENT"))
    assert repo.locks == [("doctor", 10), ("chamber", 1)]

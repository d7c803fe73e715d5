"""
Storage boundary for the scheduling core.

The core only talks to ``SchedulingRepository``. The app wires in
``SqlAlchemySchedulingRepository``; tests may hand in an in-memory fake.
"""
import abc
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import Booking, Chamber, ChamberMaintenance, ChamberSchedule, Facility, User
from models.booking import ACTIVE_BOOKING_STATUSES
from scheduling.errors import PersistenceFailure
from scheduling.types import BookingFilters

logger = logging.getLogger(__name__)


class SchedulingRepository(abc.ABC):

    # ---- facilities / chambers ----
    @abc.abstractmethod
    def get_facility(self, facility_id: int) -> Optional[Facility]: ...

    @abc.abstractmethod
    def get_chamber(self, chamber_id: int, for_update: bool = False) -> Optional[Chamber]: ...

    @abc.abstractmethod
    def lock_provider(self, doctor_id: int) -> None:
        """Hold the provider for the rest of the current transaction."""

    @abc.abstractmethod
    def list_chambers(self, facility_id=None, status=None, chamber_type=None, floor=None) -> List[Chamber]: ...

    @abc.abstractmethod
    def add_chamber(self, chamber: Chamber) -> Chamber: ...

    # ---- bookings ----
    @abc.abstractmethod
    def get_booking(self, booking_id: int) -> Optional[Booking]: ...

    @abc.abstractmethod
    def active_bookings_for_chamber(self, chamber_id: int) -> List[Booking]: ...

    @abc.abstractmethod
    def active_bookings_for_doctor(self, doctor_id: int) -> List[Booking]: ...

    @abc.abstractmethod
    def count_chamber_bookings(self, chamber_id: int, start: datetime, end: datetime) -> int:
        """Bookings of any status starting in ``[start, end)``."""

    @abc.abstractmethod
    def find_bookings(self, filters: BookingFilters) -> List[Booking]: ...

    @abc.abstractmethod
    def add_booking(self, booking: Booking, entry: ChamberSchedule) -> Booking:
        """Stage a booking and its ledger entry as one unit."""

    @abc.abstractmethod
    def schedule_entry_for(self, booking_id: int) -> Optional[ChamberSchedule]: ...

    @abc.abstractmethod
    def upcoming_schedule_entries(self, chamber_id: int, now: datetime) -> List[ChamberSchedule]: ...

    # ---- maintenance ----
    @abc.abstractmethod
    def get_maintenance(self, maintenance_id: int) -> Optional[ChamberMaintenance]: ...

    @abc.abstractmethod
    def open_maintenance_for(self, chamber_id: int) -> List[ChamberMaintenance]: ...

    @abc.abstractmethod
    def add_maintenance(self, record: ChamberMaintenance) -> ChamberMaintenance: ...

    # ---- unit of work ----
    @abc.abstractmethod
    def transaction(self):
        """Context manager: commit on success, roll back and raise on failure."""


class SqlAlchemySchedulingRepository(SchedulingRepository):

    def __init__(self, session):
        self.session = session

    def get_facility(self, facility_id):
        return self.session.get(Facility, facility_id)

    def get_chamber(self, chamber_id, for_update=False):
        if not for_update:
            return self.session.get(Chamber, chamber_id)
        # row lock serializes check-then-write per chamber; SQLite relies on BEGIN IMMEDIATE
        return (
            self.session.query(Chamber)
            .filter(Chamber.id == chamber_id)
            .with_for_update()
            .first()
        )

    def lock_provider(self, doctor_id):
        # taken before the chamber lock so concurrent writers queue in one order
        self.session.query(User.id).filter(User.id == doctor_id).with_for_update().first()

    def list_chambers(self, facility_id=None, status=None, chamber_type=None, floor=None):
        q = self.session.query(Chamber)
        if facility_id is not None:
            q = q.filter(Chamber.facility_id == facility_id)
        if status:
            q = q.filter(Chamber.status == status)
        if chamber_type:
            q = q.filter(Chamber.type == chamber_type)
        if floor is not None:
            q = q.filter(Chamber.floor == floor)
        return q.order_by(Chamber.floor.asc(), Chamber.name.asc(), Chamber.id.asc()).all()

    def add_chamber(self, chamber):
        self.session.add(chamber)
        self.session.flush()
        return chamber

    def get_booking(self, booking_id):
        return self.session.get(Booking, booking_id)

    def active_bookings_for_chamber(self, chamber_id):
        return (
            self.session.query(Booking)
            .filter(Booking.chamber_id == chamber_id, Booking.status.in_(ACTIVE_BOOKING_STATUSES))
            .order_by(Booking.start_time.asc())
            .all()
        )

    def active_bookings_for_doctor(self, doctor_id):
        return (
            self.session.query(Booking)
            .filter(Booking.doctor_id == doctor_id, Booking.status.in_(ACTIVE_BOOKING_STATUSES))
            .order_by(Booking.start_time.asc())
            .all()
        )

    def count_chamber_bookings(self, chamber_id, start, end):
        return (
            self.session.query(Booking)
            .filter(
                Booking.chamber_id == chamber_id,
                Booking.start_time >= start,
                Booking.start_time < end,
            )
            .count()
        )

    def find_bookings(self, filters):
        q = self.session.query(Booking)
        if filters.facility_id is not None:
            q = q.filter(Booking.facility_id == filters.facility_id)
        if filters.patient_id is not None:
            q = q.filter(Booking.patient_id == filters.patient_id)
        if filters.doctor_id is not None:
            q = q.filter(Booking.doctor_id == filters.doctor_id)
        if filters.chamber_id is not None:
            q = q.filter(Booking.chamber_id == filters.chamber_id)
        if filters.status:
            q = q.filter(Booking.status == filters.status)
        if filters.start_date is not None:
            q = q.filter(Booking.start_time >= filters.start_date)
        if filters.end_date is not None:
            if filters.end_inclusive:
                q = q.filter(Booking.start_time <= filters.end_date)
            else:
                q = q.filter(Booking.start_time < filters.end_date)
        return q.order_by(Booking.start_time.asc(), Booking.id.asc()).all()

    def add_booking(self, booking, entry):
        self.session.add(booking)
        self.session.flush()  # assigns booking.id
        entry.booking_id = booking.id
        self.session.add(entry)
        self.session.flush()
        return booking

    def schedule_entry_for(self, booking_id):
        return self.session.query(ChamberSchedule).filter_by(booking_id=booking_id).first()

    def upcoming_schedule_entries(self, chamber_id, now):
        return (
            self.session.query(ChamberSchedule)
            .filter(ChamberSchedule.chamber_id == chamber_id, ChamberSchedule.end_time >= now)
            .order_by(ChamberSchedule.start_time.asc())
            .all()
        )

    def get_maintenance(self, maintenance_id):
        return self.session.get(ChamberMaintenance, maintenance_id)

    def open_maintenance_for(self, chamber_id):
        return (
            self.session.query(ChamberMaintenance)
            .filter(
                ChamberMaintenance.chamber_id == chamber_id,
                ChamberMaintenance.status.in_(("scheduled", "in_progress")),
            )
            .order_by(ChamberMaintenance.scheduled_at.asc())
            .all()
        )

    def add_maintenance(self, record):
        self.session.add(record)
        self.session.flush()
        return record

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Scheduling transaction failed to commit")
            raise PersistenceFailure() from exc
        except Exception:
            self.session.rollback()
            raise

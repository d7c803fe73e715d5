"""Read-only schedule views over the booking store."""
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from models import Booking
from scheduling.errors import NotFound
from scheduling.repository import SchedulingRepository
from scheduling.types import Actor, BookingFilters, TimeWindow

DateLike = Union[date, datetime]


def _start_bound(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def _end_bound(value: DateLike):
    """(bound, inclusive). A bare date covers that whole day."""
    if isinstance(value, datetime):
        return value, True
    return _start_bound(value) + timedelta(days=1), False


class ScheduleProjections:

    def __init__(self, repository: SchedulingRepository):
        self.repository = repository

    def visible_filters(self, actor: Actor, filters: Optional[BookingFilters] = None) -> BookingFilters:
        # access rule applies before any other filter
        filters = filters or BookingFilters()
        if actor.sees_all_bookings:
            return filters
        return replace(filters, patient_id=actor.id)

    def can_see(self, actor: Actor, booking: Booking) -> bool:
        return actor.sees_all_bookings or booking.patient_id == actor.id

    def list_bookings(self, actor: Actor, filters: Optional[BookingFilters] = None) -> List[Booking]:
        return self.repository.find_bookings(self.visible_filters(actor, filters))

    def get_booking(self, actor: Actor, booking_id: int) -> Booking:
        booking = self.repository.get_booking(booking_id)
        if booking is None or not self.can_see(actor, booking):
            raise NotFound("booking", booking_id)
        return booking

    def daily(self, actor: Actor, facility_id: int, day: DateLike) -> List[Booking]:
        window = TimeWindow.for_day(day)
        return self.list_bookings(actor, BookingFilters(
            facility_id=facility_id,
            start_date=window.start,
            end_date=window.end,
            end_inclusive=False,
        ))

    def weekly(self, actor: Actor, facility_id: int, start: DateLike) -> List[Booking]:
        week_start = _start_bound(start)
        return self.list_bookings(actor, BookingFilters(
            facility_id=facility_id,
            start_date=week_start,
            end_date=week_start + timedelta(days=7),
            end_inclusive=False,
        ))

    def provider(self, actor: Actor, doctor_id: int, start: DateLike, end: DateLike) -> List[Booking]:
        end_bound, inclusive = _end_bound(end)
        return self.list_bookings(actor, BookingFilters(
            doctor_id=doctor_id,
            start_date=_start_bound(start),
            end_date=end_bound,
            end_inclusive=inclusive,
        ))

    def chamber(self, actor: Actor, chamber_id: int, start: DateLike, end: DateLike) -> List[Booking]:
        end_bound, inclusive = _end_bound(end)
        return self.list_bookings(actor, BookingFilters(
            chamber_id=chamber_id,
            start_date=_start_bound(start),
            end_date=end_bound,
            end_inclusive=inclusive,
        ))

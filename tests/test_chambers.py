from datetime import date

import pytest

from models import Booking, ChamberMaintenance
from scheduling.errors import InvalidTransition, NotFound, SchedulingError
from scheduling.types import Actor, CreateBookingRequest, MaintenanceRequest, TimeWindow
from tests.conftest import NOW, at


def book(bookings, world, start, duration, chamber, doctor):
    return bookings.create_booking(CreateBookingRequest(
        patient_id=world["patient"].id,
        doctor_id=doctor.id,
        facility_id=world["facility"].id,
        booking_date=start.date(),
        start_time=start,
        duration=duration,
        service_type="therapy",
        created_by=world["patient"].id,
        chamber_id=chamber.id,
    ))


class TestUtilization:

    def test_counts_confirmed_and_completed(self, world, bookings, chambers):
        admin = Actor(id=world["admin"].id, role="ADMIN")
        c1 = world["c1"]
        a = book(bookings, world, at(9), 60, c1, world["doctor"])
        b = book(bookings, world, at(11), 120, c1, world["doctor"])
        book(bookings, world, at(14), 30, c1, world["doctor"])  # stays pending
        bookings.confirm_booking(a.id, admin)
        bookings.confirm_booking(b.id, admin)
        bookings.complete_booking(b.id, admin)

        u = chambers.utilization(c1.id, date(2030, 1, 15))

        assert u.total_bookings == 2
        assert u.total_minutes_occupied == 180
        assert u.total_minutes_available == 480
        assert u.occupancy_rate == 37.5
        assert u.average_booking_duration == 90

    def test_empty_day(self, world, chambers):
        u = chambers.utilization(world["c2"].id, date(2030, 1, 15))
        assert (u.total_bookings, u.occupancy_rate, u.average_booking_duration) == (0, 0.0, 0)

    def test_unknown_chamber(self, world, chambers):
        with pytest.raises(NotFound):
            chambers.utilization(999, date(2030, 1, 15))


class TestMaintenance:

    def test_schedule_then_complete(self, world, chambers):
        c1 = world["c1"]
        record = chambers.schedule_maintenance(MaintenanceRequest(c1.id, "cleaning", at(18)))

        assert record.status == "scheduled"
        assert c1.status == "maintenance"
        assert chambers.get_available_chambers(world["facility"].id, TimeWindow(at(9), at(10))) == [world["c2"]]

        done = chambers.complete_maintenance(record.id)

        assert done.status == "completed"
        assert done.completed_at == NOW
        assert c1.status == "available"

    def test_complete_twice(self, world, chambers):
        record = chambers.schedule_maintenance(MaintenanceRequest(world["c1"].id, "repair", at(18)))
        chambers.complete_maintenance(record.id)
        with pytest.raises(InvalidTransition):
            chambers.complete_maintenance(record.id)

    def test_invalid_type(self, world, chambers):
        with pytest.raises(SchedulingError):
            chambers.schedule_maintenance(MaintenanceRequest(world["c1"].id, "painting", at(18)))
        assert ChamberMaintenance.query.count() == 0


class TestChamberAdmin:

    def test_create_chamber(self, world, chambers):
        chamber = chambers.create_chamber(world["facility"].id, "C3", "imaging", floor=2, equipment=["xray", "xray"])
        assert chamber.id is not None
        assert chamber.equipment == ["xray"]
        assert chamber.status == "available"

    def test_create_in_unknown_facility(self, world, chambers):
        with pytest.raises(NotFound):
            chambers.create_chamber(999, "C9", "therapy")

    def test_status_update(self, world, chambers):
        chamber = chambers.update_chamber_status(world["c2"].id, "disabled")
        assert chamber.status == "disabled"
        with pytest.raises(SchedulingError):
            chambers.update_chamber_status(world["c2"].id, "exploded")

    def test_overview(self, world, bookings, chambers):
        book(bookings, world, at(9), 60, world["c1"], world["doctor"])
        overview = chambers.chamber_overview(world["c1"].id)

        assert [b.chamber_id for b in overview.active_bookings] == [world["c1"].id]
        assert len(overview.upcoming_schedule) == 1
        assert overview.open_maintenance == []
        assert Booking.query.count() == 1

from datetime import date, datetime

import pytest

from scheduling.errors import NotFound
from scheduling.projections import ScheduleProjections
from scheduling.types import Actor, BookingFilters
from tests.fakes import InMemorySchedulingRepository, make_booking, make_chamber

PATIENT = Actor(id=20, role="PATIENT")
STRANGER = Actor(id=21, role="PATIENT")
PROVIDER = Actor(id=10, role="PROVIDER")
ADMIN = Actor(id=1, role="ADMIN")


def dt(day, hour):
    return datetime(2030, 1, day, hour)


@pytest.fixture
def projections():
    repo = InMemorySchedulingRepository(
        chambers=[make_chamber(1), make_chamber(2)],
        bookings=[
            make_booking(1, 1, dt(15, 9), dt(15, 10), patient_id=20),
            make_booking(2, 2, dt(15, 11), dt(15, 12), patient_id=22, status="cancelled"),
            make_booking(3, 1, dt(16, 9), dt(16, 10), patient_id=20, doctor_id=11),
            make_booking(4, 2, dt(21, 23), dt(22, 0), patient_id=22),
            make_booking(5, 1, dt(22, 0), dt(22, 1), patient_id=20),
        ],
    )
    return ScheduleProjections(repo)


def ids(rows):
    return [b.id for b in rows]


class TestVisibility:

    def test_non_owner_never_sees_other_bookings(self, projections):
        views = [
            projections.daily(STRANGER, 1, date(2030, 1, 15)),
            projections.weekly(STRANGER, 1, date(2030, 1, 15)),
            projections.provider(STRANGER, 10, date(2030, 1, 1), date(2030, 1, 31)),
            projections.chamber(STRANGER, 2, date(2030, 1, 1), date(2030, 1, 31)),
            projections.list_bookings(STRANGER),
        ]
        assert all(rows == [] for rows in views)

    def test_patient_filter_cannot_be_overridden(self, projections):
        rows = projections.list_bookings(PATIENT, BookingFilters(patient_id=22))
        assert ids(rows) == [1, 3, 5]

    @pytest.mark.parametrize("staff", [PROVIDER, ADMIN, Actor(id=2, role="SUPER_ADMIN")])
    def test_staff_see_everything(self, projections, staff):
        assert ids(projections.daily(staff, 1, date(2030, 1, 15))) == [1, 2]

    def test_get_booking_hides_foreign_booking(self, projections):
        assert projections.get_booking(PATIENT, 1).id == 1
        with pytest.raises(NotFound):
            projections.get_booking(PATIENT, 2)
        with pytest.raises(NotFound):
            projections.get_booking(ADMIN, 999)


class TestRanges:

    def test_daily_is_one_day(self, projections):
        assert ids(projections.daily(ADMIN, 1, date(2030, 1, 16))) == [3]

    def test_daily_includes_cancelled(self, projections):
        assert 2 in ids(projections.daily(ADMIN, 1, date(2030, 1, 15)))

    def test_weekly_covers_seven_days_exclusive(self, projections):
        # 15th through 21st; booking 5 starts at midnight on the 22nd
        assert ids(projections.weekly(ADMIN, 1, date(2030, 1, 15))) == [1, 2, 3, 4]

    def test_provider_view(self, projections):
        rows = projections.provider(ADMIN, 10, date(2030, 1, 15), date(2030, 1, 21))
        assert ids(rows) == [1, 2, 4]

    def test_bare_end_date_covers_whole_day(self, projections):
        rows = projections.chamber(ADMIN, 1, date(2030, 1, 15), date(2030, 1, 16))
        assert ids(rows) == [1, 3]

    def test_datetime_end_is_inclusive(self, projections):
        rows = projections.chamber(ADMIN, 1, dt(15, 0), dt(16, 9))
        assert ids(rows) == [1, 3]
        rows = projections.chamber(ADMIN, 1, dt(15, 0), dt(16, 8))
        assert ids(rows) == [1]

    def test_sorted_by_start(self, projections):
        rows = projections.list_bookings(ADMIN)
        assert [b.start_time for b in rows] == sorted(b.start_time for b in rows)

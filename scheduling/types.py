"""Value types passed in and out of the scheduling core."""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import FrozenSet, Optional, Tuple

from scheduling.errors import InvalidRequest

ROLE_PATIENT = "PATIENT"
ROLE_PROVIDER = "PROVIDER"
ROLE_ADMIN = "ADMIN"
ROLE_SUPER_ADMIN = "SUPER_ADMIN"

ADMIN_ROLES = frozenset({ROLE_ADMIN, ROLE_SUPER_ADMIN})
# roles that see every booking in schedule views
STAFF_ROLES = ADMIN_ROLES | {ROLE_PROVIDER}

MOBILITY_LEVELS = ("high", "medium", "low")


def _check_duration(minutes) -> None:
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
        raise InvalidRequest(f"duration must be a positive number of minutes, got {minutes!r}")


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError("end must be after start")

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> "TimeWindow":
        return cls(start, start + timedelta(minutes=minutes))

    @classmethod
    def for_day(cls, day: date) -> "TimeWindow":
        start = datetime(day.year, day.month, day.day)
        return cls(start, start + timedelta(days=1))

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller as seen by the core."""

    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_provider(self) -> bool:
        return self.role == ROLE_PROVIDER

    @property
    def sees_all_bookings(self) -> bool:
        return self.role in STAFF_ROLES


@dataclass(frozen=True)
class ChamberFilters:
    type: Optional[str] = None
    floor: Optional[int] = None
    equipment: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class AssignmentFactors:
    service_type: str
    duration: int
    equipment_needed: Tuple[str, ...] = ()
    doctor_preference: Tuple[int, ...] = ()
    patient_mobility: Optional[str] = None


@dataclass(frozen=True)
class CreateBookingRequest:
    patient_id: int
    doctor_id: int
    facility_id: int
    booking_date: date
    start_time: datetime
    duration: int
    service_type: str
    created_by: int
    notes: Optional[str] = None
    chamber_id: Optional[int] = None
    equipment_needed: Tuple[str, ...] = ()
    patient_mobility: Optional[str] = None
    doctor_preference: Tuple[int, ...] = ()

    def __post_init__(self):
        _check_duration(self.duration)

    @property
    def window(self) -> TimeWindow:
        return TimeWindow.from_duration(self.start_time, self.duration)

    def assignment_factors(self) -> AssignmentFactors:
        return AssignmentFactors(
            service_type=self.service_type,
            duration=self.duration,
            equipment_needed=tuple(self.equipment_needed),
            doctor_preference=tuple(self.doctor_preference),
            patient_mobility=self.patient_mobility,
        )


@dataclass(frozen=True)
class UpdateBookingRequest:
    start_time: Optional[datetime] = None
    duration: Optional[int] = None
    chamber_id: Optional[int] = None
    notes: Optional[str] = None
    payment_status: Optional[str] = None

    def __post_init__(self):
        if self.duration is not None:
            _check_duration(self.duration)

    @property
    def changes_window(self) -> bool:
        return any(v is not None for v in (self.start_time, self.duration, self.chamber_id))


@dataclass(frozen=True)
class BookingFilters:
    facility_id: Optional[int] = None
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    chamber_id: Optional[int] = None
    status: Optional[str] = None
    start_date: Optional[datetime] = None  # inclusive, on start_time
    end_date: Optional[datetime] = None
    end_inclusive: bool = True


@dataclass
class ScoredChamber:
    chamber: object
    score: int
    today_usage_count: int = 0


@dataclass(frozen=True)
class MaintenanceRequest:
    chamber_id: int
    type: str
    scheduled_at: datetime
    notes: Optional[str] = None
    assigned_to: Optional[int] = None


@dataclass
class ChamberUtilization:
    chamber_id: int
    date: date
    total_bookings: int
    total_minutes_occupied: int
    total_minutes_available: int
    occupancy_rate: float
    average_booking_duration: int = 0


@dataclass
class ChamberOverview:
    chamber: object
    active_bookings: list
    upcoming_schedule: list
    open_maintenance: list

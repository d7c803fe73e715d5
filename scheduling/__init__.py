from .types import (
    Actor,
    AssignmentFactors,
    BookingFilters,
    ChamberFilters,
    CreateBookingRequest,
    MaintenanceRequest,
    TimeWindow,
    UpdateBookingRequest,
)
from .errors import (
    SchedulingError,
    NotFound,
    NoAvailableChamber,
    ConflictDetected,
    InvalidRequest,
    InvalidTransition,
    PersistenceFailure,
)
from .conflicts import has_conflict, find_conflicts
from .repository import SchedulingRepository, SqlAlchemySchedulingRepository
from .availability import AvailabilityResolver
from .scoring import score_chamber, rank_chambers, pick_optimal
from .chambers import ChamberService
from .lifecycle import BookingService
from .projections import ScheduleProjections

import logging
from datetime import date, datetime
from typing import Callable, List, Optional

from models import Chamber, ChamberMaintenance
from models.chamber import CHAMBER_STATUSES, MAINTENANCE_TYPES
from scheduling.availability import AvailabilityResolver
from scheduling.errors import InvalidTransition, NotFound, SchedulingError
from scheduling.repository import SchedulingRepository
from scheduling.scoring import pick_optimal
from scheduling.types import (
    AssignmentFactors,
    BookingFilters,
    ChamberFilters,
    ChamberOverview,
    ChamberUtilization,
    MaintenanceRequest,
    ScoredChamber,
    TimeWindow,
)

logger = logging.getLogger(__name__)

UTILIZATION_STATUSES = ("confirmed", "completed")


class ChamberService:
    """Chamber queries, status changes, maintenance and smart assignment."""

    def __init__(
        self,
        repository: SchedulingRepository,
        clock: Callable[[], datetime] = datetime.utcnow,
        workday_hours: int = 8,
    ):
        self.repository = repository
        self.clock = clock
        self.workday_hours = workday_hours
        self.resolver = AvailabilityResolver(repository)

    # ---------- queries ----------
    def list_chambers(self, facility_id=None, status=None, floor=None, chamber_type=None) -> List[Chamber]:
        return self.repository.list_chambers(
            facility_id=facility_id, status=status, chamber_type=chamber_type, floor=floor,
        )

    def get_chamber(self, chamber_id: int) -> Chamber:
        chamber = self.repository.get_chamber(chamber_id)
        if chamber is None:
            raise NotFound("chamber", chamber_id)
        return chamber

    def chamber_overview(self, chamber_id: int) -> ChamberOverview:
        chamber = self.get_chamber(chamber_id)
        return ChamberOverview(
            chamber=chamber,
            active_bookings=self.repository.active_bookings_for_chamber(chamber_id),
            upcoming_schedule=self.repository.upcoming_schedule_entries(chamber_id, self.clock()),
            open_maintenance=self.repository.open_maintenance_for(chamber_id),
        )

    def create_chamber(self, facility_id: int, name: str, chamber_type: str, floor: int = 1,
                       equipment=(), status: str = "available") -> Chamber:
        if status not in CHAMBER_STATUSES:
            raise SchedulingError(f"Invalid chamber status: {status}")
        with self.repository.transaction():
            if self.repository.get_facility(facility_id) is None:
                raise NotFound("facility", facility_id)
            chamber = Chamber(
                facility_id=facility_id,
                name=name,
                type=chamber_type,
                floor=floor,
                equipment=sorted(set(equipment)),
                status=status,
            )
            self.repository.add_chamber(chamber)
        logger.info("Chamber %s created in facility %s", chamber.id, facility_id)
        return chamber

    # ---------- availability / assignment ----------
    def get_available_chambers(self, facility_id: int, window: TimeWindow,
                               filters: Optional[ChamberFilters] = None) -> List[Chamber]:
        return self.resolver.available_chambers(facility_id, window, filters)

    def today_usage_count(self, chamber) -> int:
        today = TimeWindow.for_day(self.clock().date())
        return self.repository.count_chamber_bookings(chamber.id, today.start, today.end)

    def assign_optimal_chamber(self, facility_id: int, window: TimeWindow,
                               factors: AssignmentFactors) -> Optional[ScoredChamber]:
        """
        Pick the best free chamber for ``factors``.

        Candidates are restricted to chambers of the requested service type
        that carry all requested equipment. Returns None when nothing fits.
        """
        candidates = self.resolver.available_chambers(
            facility_id,
            window,
            ChamberFilters(type=factors.service_type, equipment=frozenset(factors.equipment_needed)),
        )
        picked = pick_optimal(candidates, factors, self.today_usage_count)
        if picked is not None:
            logger.debug(
                "Chamber assignment: %s of %s candidates, score=%s",
                picked.chamber.id, len(candidates), picked.score,
            )
        return picked

    # ---------- status / maintenance ----------
    def update_chamber_status(self, chamber_id: int, status: str) -> Chamber:
        if status not in CHAMBER_STATUSES:
            raise SchedulingError(f"Invalid chamber status: {status}")
        with self.repository.transaction():
            chamber = self.get_chamber(chamber_id)
            chamber.status = status
        logger.info("Chamber %s status updated to %s", chamber_id, status)
        return chamber

    def schedule_maintenance(self, request: MaintenanceRequest) -> ChamberMaintenance:
        if request.type not in MAINTENANCE_TYPES:
            raise SchedulingError(f"Invalid maintenance type: {request.type}")
        with self.repository.transaction():
            chamber = self.get_chamber(request.chamber_id)
            record = ChamberMaintenance(
                chamber_id=chamber.id,
                type=request.type,
                status="scheduled",
                scheduled_at=request.scheduled_at,
                notes=request.notes,
                assigned_to=request.assigned_to,
            )
            self.repository.add_maintenance(record)
            chamber.status = "maintenance"
        logger.info("Maintenance scheduled for chamber %s", chamber.id)
        return record

    def complete_maintenance(self, maintenance_id: int) -> ChamberMaintenance:
        with self.repository.transaction():
            record = self.repository.get_maintenance(maintenance_id)
            if record is None:
                raise NotFound("maintenance record", maintenance_id)
            if record.status == "completed":
                raise InvalidTransition("Maintenance already completed", current_status=record.status)
            record.status = "completed"
            record.completed_at = self.clock()
            chamber = self.get_chamber(record.chamber_id)
            chamber.status = "available"
        logger.info("Maintenance completed for chamber %s", record.chamber_id)
        return record

    # ---------- metrics ----------
    def utilization(self, chamber_id: int, day: date) -> ChamberUtilization:
        self.get_chamber(chamber_id)
        window = TimeWindow.for_day(day)

        # any status fetched, then narrowed; find_bookings filters one status at a time
        bookings = [
            b for b in self.repository.find_bookings(_day_filters(chamber_id, window))
            if b.status in UTILIZATION_STATUSES
        ]

        occupied = sum(b.duration for b in bookings)
        available = self.workday_hours * 60
        rate = (occupied / available) * 100 if available else 0.0

        return ChamberUtilization(
            chamber_id=chamber_id,
            date=day,
            total_bookings=len(bookings),
            total_minutes_occupied=occupied,
            total_minutes_available=available,
            occupancy_rate=round(rate, 2),
            average_booking_duration=round(occupied / len(bookings)) if bookings else 0,
        )


def _day_filters(chamber_id, window):
    return BookingFilters(
        chamber_id=chamber_id,
        start_date=window.start,
        end_date=window.end,
        end_inclusive=False,
    )

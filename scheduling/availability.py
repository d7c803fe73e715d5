import logging
from typing import List, Optional

from scheduling.conflicts import has_conflict, window_of
from scheduling.repository import SchedulingRepository
from scheduling.types import ChamberFilters, TimeWindow

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """Finds the chambers of a facility that are free for a window."""

    def __init__(self, repository: SchedulingRepository):
        self.repository = repository

    def is_chamber_free(self, chamber_id: int, window: TimeWindow, exclude_booking_id: Optional[int] = None) -> bool:
        existing = [
            window_of(b)
            for b in self.repository.active_bookings_for_chamber(chamber_id)
            if exclude_booking_id is None or b.id != exclude_booking_id
        ]
        return not has_conflict(existing, window)

    def available_chambers(self, facility_id: int, window: TimeWindow, filters: Optional[ChamberFilters] = None) -> List:
        """
        Chambers with status ``available`` that match the structural filters,
        have no active booking overlapping ``window`` and carry every
        requested equipment tag.

        An empty list means nothing qualifies. Order carries no meaning.
        """
        filters = filters or ChamberFilters()

        # structural filters first, time checks only on what survives
        candidates = self.repository.list_chambers(
            facility_id=facility_id,
            status="available",
            chamber_type=filters.type,
            floor=filters.floor,
        )

        seen = set()
        free = []
        for chamber in candidates:
            if chamber.id in seen:
                continue
            seen.add(chamber.id)

            if not self.is_chamber_free(chamber.id, window):
                continue
            if filters.equipment and not filters.equipment <= chamber.equipment_set:
                continue
            free.append(chamber)

        logger.debug(
            "Availability for facility %s %s-%s: %d of %d chambers free",
            facility_id, window.start.isoformat(), window.end.isoformat(), len(free), len(candidates),
        )
        return free

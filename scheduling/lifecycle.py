"""
Booking lifecycle: create, update, confirm, cancel, complete.

Allowed status moves::

    pending   -> confirmed  (provider)
    pending   -> cancelled  (patient)
    confirmed -> cancelled  (patient)
    confirmed -> completed  (provider)

Administrators may act in place of either party, which goes beyond the
provider-only and patient-only gates above. Every mutation re-checks
chamber and provider conflicts inside the same transaction that writes the
Booking and its ChamberSchedule entry.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from models import Booking, ChamberSchedule
from scheduling.chambers import ChamberService
from scheduling.conflicts import find_conflicts
from scheduling.errors import ConflictDetected, InvalidTransition, NoAvailableChamber, NotFound
from scheduling.repository import SchedulingRepository
from scheduling.types import Actor, CreateBookingRequest, TimeWindow, UpdateBookingRequest

logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"

ALLOWED_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {CANCELLED, COMPLETED},
    COMPLETED: set(),
    CANCELLED: set(),
}

# ChamberSchedule status that mirrors each booking status
LEDGER_STATUS = {
    PENDING: "reserved",
    CONFIRMED: "occupied",
    CANCELLED: "cancelled",
}

# which party of the booking drives each target status
TRANSITION_PARTY = {
    CONFIRMED: "doctor",
    COMPLETED: "doctor",
    CANCELLED: "patient",
}


class BookingService:

    def __init__(
        self,
        repository: SchedulingRepository,
        chambers: Optional[ChamberService] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.repository = repository
        self.clock = clock
        self.chambers = chambers or ChamberService(repository, clock=clock)

    # ---------- conflict checks ----------
    def check_conflicts(self, doctor_id: int, window: TimeWindow,
                        exclude_booking_id: Optional[int] = None) -> List[Booking]:
        """Active bookings of ``doctor_id`` overlapping ``window``."""
        return find_conflicts(
            self.repository.active_bookings_for_doctor(doctor_id), window, exclude_booking_id,
        )

    def chamber_conflicts(self, chamber_id: int, window: TimeWindow,
                          exclude_booking_id: Optional[int] = None) -> List[Booking]:
        return find_conflicts(
            self.repository.active_bookings_for_chamber(chamber_id), window, exclude_booking_id,
        )

    def _ensure_free(self, chamber_id: int, doctor_id: int, window: TimeWindow,
                     exclude_booking_id: Optional[int] = None):
        clashes = self.check_conflicts(doctor_id, window, exclude_booking_id)
        if clashes:
            logger.warning("Doctor %s already booked for %s", doctor_id, window.start.isoformat())
            raise ConflictDetected(
                "Doctor already has a booking in the requested time slot",
                conflicts=clashes, resource="doctor",
            )
        clashes = self.chamber_conflicts(chamber_id, window, exclude_booking_id)
        if clashes:
            logger.warning("Chamber %s already booked for %s", chamber_id, window.start.isoformat())
            raise ConflictDetected(
                "Selected chamber is not available for the requested time slot",
                conflicts=clashes, resource="chamber",
            )

    # ---------- create / update ----------
    def create_booking(self, request: CreateBookingRequest) -> Booking:
        window = request.window

        with self.repository.transaction():
            self.repository.lock_provider(request.doctor_id)
            if self.repository.get_facility(request.facility_id) is None:
                raise NotFound("facility", request.facility_id)

            if request.chamber_id is None:
                picked = self.chambers.assign_optimal_chamber(
                    request.facility_id, window, request.assignment_factors(),
                )
                if picked is None:
                    logger.warning(
                        "No chamber available in facility %s for %s",
                        request.facility_id, window.start.isoformat(),
                    )
                    raise NoAvailableChamber()
                chamber_id = picked.chamber.id
                logger.info(
                    "Smart chamber assignment: chamber=%s name=%s score=%s",
                    chamber_id, picked.chamber.name, picked.score,
                )
            else:
                chamber_id = request.chamber_id

            chamber = self.repository.get_chamber(chamber_id, for_update=True)
            if chamber is None or chamber.facility_id != request.facility_id:
                raise NotFound("chamber", chamber_id)

            self._ensure_free(chamber.id, request.doctor_id, window)

            booking = Booking(
                patient_id=request.patient_id,
                doctor_id=request.doctor_id,
                chamber_id=chamber.id,
                facility_id=request.facility_id,
                booking_date=request.booking_date,
                start_time=window.start,
                end_time=window.end,
                duration=request.duration,
                service_type=request.service_type,
                notes=request.notes,
                status=PENDING,
                payment_status="pending",
                created_by=request.created_by,
            )
            entry = ChamberSchedule(
                chamber_id=chamber.id,
                status=LEDGER_STATUS[PENDING],
                start_time=window.start,
                end_time=window.end,
            )
            self.repository.add_booking(booking, entry)

        logger.info(
            "Booking created: id=%s chamber=%s start=%s",
            booking.id, booking.chamber_id, booking.start_time.isoformat(),
        )
        return booking

    def update_booking(self, booking_id: int, changes: UpdateBookingRequest, actor: Actor) -> Booking:
        with self.repository.transaction():
            booking = self._get(booking_id)
            if not (actor.is_admin or actor.id in (booking.patient_id, booking.doctor_id)):
                raise InvalidTransition("Not allowed to modify this booking", forbidden=True)
            if not booking.is_active:
                raise InvalidTransition(
                    f"Cannot modify a {booking.status} booking", current_status=booking.status,
                )

            if changes.changes_window:
                start = changes.start_time or booking.start_time
                duration = changes.duration or booking.duration
                chamber_id = changes.chamber_id or booking.chamber_id
                window = TimeWindow.from_duration(start, duration)

                self.repository.lock_provider(booking.doctor_id)
                chamber = self.repository.get_chamber(chamber_id, for_update=True)
                if chamber is None or chamber.facility_id != booking.facility_id:
                    raise NotFound("chamber", chamber_id)

                self._ensure_free(chamber.id, booking.doctor_id, window, exclude_booking_id=booking.id)

                booking.chamber_id = chamber.id
                booking.start_time = window.start
                booking.end_time = window.end
                booking.duration = duration
                booking.booking_date = window.start.date()

                entry = self._ledger_entry(booking)
                entry.chamber_id = chamber.id
                entry.start_time = window.start
                entry.end_time = window.end

            if changes.notes is not None:
                booking.notes = changes.notes
            if changes.payment_status is not None:
                booking.payment_status = changes.payment_status

        logger.info("Booking updated: id=%s", booking_id)
        return booking

    # ---------- status transitions ----------
    def confirm_booking(self, booking_id: int, actor: Actor) -> Booking:
        return self.transition(booking_id, CONFIRMED, actor)

    def complete_booking(self, booking_id: int, actor: Actor) -> Booking:
        return self.transition(booking_id, COMPLETED, actor)

    def cancel_booking(self, booking_id: int, actor: Actor, reason: Optional[str] = None) -> Booking:
        return self.transition(booking_id, CANCELLED, actor, reason=reason)

    def transition(self, booking_id: int, target: str, actor: Actor, reason: Optional[str] = None) -> Booking:
        with self.repository.transaction():
            booking = self._get(booking_id)
            self._authorize_transition(booking, target, actor)

            if target not in ALLOWED_TRANSITIONS.get(booking.status, set()):
                raise InvalidTransition(
                    f"Cannot move booking from {booking.status} to {target}",
                    current_status=booking.status,
                )

            booking.status = target
            if target == CANCELLED:
                booking.cancelled_at = self.clock()
                booking.cancel_reason = reason
            if target in LEDGER_STATUS:
                self._ledger_entry(booking).status = LEDGER_STATUS[target]

        logger.info("Booking %s: id=%s by user=%s", target, booking_id, actor.id)
        return booking

    def _authorize_transition(self, booking: Booking, target: str, actor: Actor):
        if actor.is_admin:
            return
        party = TRANSITION_PARTY.get(target)
        if party == "doctor" and actor.is_provider and actor.id == booking.doctor_id:
            return
        if party == "patient" and actor.id == booking.patient_id:
            return
        raise InvalidTransition(
            f"Role {actor.role} may not set this booking to {target}",
            current_status=booking.status,
            forbidden=True,
        )

    # ---------- helpers ----------
    def _get(self, booking_id: int) -> Booking:
        booking = self.repository.get_booking(booking_id)
        if booking is None:
            raise NotFound("booking", booking_id)
        return booking

    def _ledger_entry(self, booking: Booking) -> ChamberSchedule:
        entry = self.repository.schedule_entry_for(booking.id)
        if entry is None:
            # every booking is written together with its entry
            raise NotFound("chamber schedule entry", booking.id)
        return entry

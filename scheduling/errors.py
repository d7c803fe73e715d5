"""Typed failures raised by the scheduling core.

Every operation either succeeds or raises one of these; the HTTP layer maps
them to responses through ``status_code`` and ``code``.
"""


class SchedulingError(Exception):
    status_code = 400
    code = "SCHEDULING_ERROR"
    default_message = "Scheduling request failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return self.args[0]

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class NotFound(SchedulingError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found")


class NoAvailableChamber(SchedulingError):
    status_code = 409
    code = "NO_AVAILABLE_CHAMBER"
    default_message = "No available chambers for the requested time slot"


class ConflictDetected(SchedulingError):
    status_code = 409
    code = "CONFLICT_DETECTED"
    default_message = "Requested time slot conflicts with an existing booking"

    def __init__(self, message: str = None, conflicts=None, resource: str = None):
        self.conflicts = list(conflicts or [])
        # ids read now, the rows expire once the transaction rolls back
        self.conflicting_ids = [b.id for b in self.conflicts]
        self.resource = resource
        super().__init__(message)

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["resource"] = self.resource
        out["conflicting_booking_ids"] = self.conflicting_ids
        return out


class InvalidTransition(SchedulingError):
    status_code = 409
    code = "INVALID_TRANSITION"
    default_message = "Operation not allowed in the booking's current state"

    def __init__(self, message: str = None, current_status: str = None, forbidden: bool = False):
        self.current_status = current_status
        # role-gating failures surface as 403, state failures as 409
        if forbidden:
            self.status_code = 403
        super().__init__(message)


class PersistenceFailure(SchedulingError):
    status_code = 503
    code = "PERSISTENCE_FAILURE"
    default_message = "Could not save the change, please retry"


class InvalidRequest(SchedulingError):
    status_code = 400
    code = "INVALID_REQUEST"
    default_message = "Invalid booking request"

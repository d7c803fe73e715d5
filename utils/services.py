from flask import current_app

from models import db
from scheduling import BookingService, ChamberService, ScheduleProjections, SqlAlchemySchedulingRepository


def _repository():
    return SqlAlchemySchedulingRepository(db.session)


def chamber_service(repository=None) -> ChamberService:
    return ChamberService(
        repository or _repository(),
        workday_hours=current_app.config.get("CHAMBER_WORKDAY_HOURS", 8),
    )


def booking_service() -> BookingService:
    repository = _repository()
    return BookingService(repository, chambers=chamber_service(repository))


def schedule_projections() -> ScheduleProjections:
    return ScheduleProjections(_repository())

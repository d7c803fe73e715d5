from .db import db, serialize_sqlite_writes
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import AuthSession
from .facility import Facility
from .chamber import Chamber, ChamberMaintenance
from .booking import Booking, ChamberSchedule

from .health import health_bp
from .auth import auth_bp
from .admin import admin_bp
from .bookings import booking_bp
from .chambers import chamber_bp
from .schedule import schedule_bp

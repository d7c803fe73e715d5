import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    DEBUG = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # chamberslot.db next to this file unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "chamberslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # db.create_all() at startup instead of `flask db upgrade` (demos, tests)
    CREATE_TABLES_ON_STARTUP = _env_flag("CREATE_TABLES_ON_STARTUP")
    # take the write lock at BEGIN so booking checks cannot interleave
    SQLITE_BEGIN_IMMEDIATE = True

    # ---- auth ----
    AUTH_COOKIE_NAME = "chamberslot_session"
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60
    IDLE_TIMEOUT_SECONDS = 20 * 60
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE")  # true behind HTTPS
    CSRF_ENABLED = True
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
    ADMIN_SIGNUP_CODE = os.getenv("ADMIN_SIGNUP_CODE")

    # ---- scheduling ----
    BOOKING_MIN_DURATION_MINUTES = 15
    BOOKING_MAX_DURATION_MINUTES = 480
    # bookable hours per chamber per day; denominator of utilization
    CHAMBER_WORKDAY_HOURS = int(os.getenv("CHAMBER_WORKDAY_HOURS", "8"))

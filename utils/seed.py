import logging

from sqlalchemy import inspect

from models import db
from models.user import Role
from utils.roles import ROLE_PRECEDENCE

logger = logging.getLogger(__name__)


def seed_roles():
    """Create any of PATIENT, PROVIDER, ADMIN, SUPER_ADMIN that are missing."""
    # fresh database, migrations not applied yet
    if not inspect(db.engine).has_table(Role.__tablename__):
        logger.warning("roles table missing; run `flask db upgrade` before serving")
        return

    existing = {name for (name,) in db.session.query(Role.name)}
    missing = [name for name in reversed(ROLE_PRECEDENCE) if name not in existing]
    if not missing:
        return
    db.session.add_all(Role(name=name) for name in missing)
    db.session.commit()
    logger.info("Seeded roles: %s", ", ".join(missing))

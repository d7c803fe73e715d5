import logging
from functools import wraps

from flask import g, jsonify, request

from scheduling.types import ROLE_SUPER_ADMIN

logger = logging.getLogger(__name__)


def require_roles(*role_names: str):
    """
    Gate a view on any of ``role_names``::

        @require_roles("ADMIN", "PROVIDER")

    SUPER_ADMIN passes every gate.
    """
    allowed = frozenset(role_names)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            held = user.role_names
            if ROLE_SUPER_ADMIN in held or held & allowed:
                return fn(*args, **kwargs)

            logger.info("Forbidden: user=%s path=%s needs one of %s", user.id, request.path, sorted(allowed))
            return jsonify(error="Forbidden", required_roles=sorted(allowed)), 403
        return wrapper
    return decorator

from functools import wraps

from flask import g, jsonify

from scheduling.types import Actor
from security.session import session_for_request
from utils.roles import effective_role


def load_current_user():
    """before_request hook: resolve the cookie to ``g.session`` and ``g.user``."""
    sess = session_for_request()
    g.session = sess
    g.user = sess.user if sess is not None else None


def current_actor() -> Actor:
    """The logged-in user as the scheduling core sees it."""
    return Actor(id=g.user.id, role=effective_role(g.user.roles))


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper

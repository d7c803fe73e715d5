"""Double-submit CSRF check for cookie-authenticated writes."""
import logging
import secrets

from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
# requests made before a session exists
EXEMPT_PATHS = frozenset({"/auth/login", "/auth/register", "/health"})


def issue_csrf_token(resp):
    resp.set_cookie(
        CSRF_COOKIE,
        secrets.token_urlsafe(32),
        httponly=False,  # read by client JS and echoed in the header
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp


def csrf_protect():
    """before_request hook; returns a 403 response when the tokens disagree."""
    if not current_app.config.get("CSRF_ENABLED", True):
        return None
    if request.method in SAFE_METHODS or request.path in EXEMPT_PATHS:
        return None
    if getattr(g, "user", None) is None:
        return None

    cookie_token = request.cookies.get(CSRF_COOKIE, "")
    header_token = request.headers.get(CSRF_HEADER, "")
    if cookie_token and header_token and secrets.compare_digest(cookie_token, header_token):
        return None

    logger.warning("CSRF check failed: %s %s user=%s", request.method, request.path, g.user.id)
    return jsonify(error="CSRF validation failed"), 403

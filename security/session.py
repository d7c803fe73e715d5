"""
Cookie sessions backed by the ``sessions`` table.

The browser keeps a random token; only its SHA-256 digest is stored, so a
leaked table cannot be replayed as cookies.
"""
import hashlib
import secrets
from datetime import datetime, timedelta

from flask import current_app, request

from models import db
from models.session import AuthSession
from utils.audit import client_agent, client_ip


def token_digest(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "chamberslot_session")


def open_session(user_id: int) -> str:
    """Persist a new session for ``user_id`` and return the raw cookie token."""
    raw_token = secrets.token_urlsafe(32)
    now = datetime.utcnow()
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)

    db.session.add(AuthSession(
        user_id=user_id,
        token_hash=token_digest(raw_token),
        created_at=now,
        expires_at=now + timedelta(seconds=lifetime),
        ip=client_ip(),
        user_agent=client_agent(),
    ))
    db.session.commit()
    return raw_token


def session_for_request():
    raw_token = request.cookies.get(cookie_name())
    if not raw_token:
        return None

    sess = AuthSession.query.filter_by(token_hash=token_digest(raw_token)).first()
    now = datetime.utcnow()
    if sess is None or sess.expired(now):
        return None
    if sess.idle(now, current_app.config.get("IDLE_TIMEOUT_SECONDS", 20 * 60)):
        return None

    sess.touch(now)
    db.session.commit()
    return sess


def close_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = AuthSession.query.filter_by(token_hash=token_digest(raw_token)).first()
    if sess is None:
        return False
    sess.revoked = True
    db.session.commit()
    return True


def close_user_sessions(user_id: int) -> int:
    closed = (
        AuthSession.query
        .filter_by(user_id=user_id, revoked=False)
        .update({"revoked": True}, synchronize_session=False)
    )
    db.session.commit()
    return closed


def set_session_cookie(resp, raw_token: str):
    cfg = current_app.config
    resp.set_cookie(
        cookie_name(),
        raw_token,
        httponly=True,
        secure=cfg.get("SESSION_COOKIE_SECURE", False),
        samesite=cfg.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=cfg.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return resp


def clear_session_cookie(resp):
    resp.delete_cookie(cookie_name(), path="/")
    return resp

import secrets

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from scheduling.types import ROLE_ADMIN, ROLE_PATIENT
from security.csrf import issue_csrf_token
from security.password import hash_password, needs_rehash, verify_password
from security.session import (
    clear_session_cookie,
    close_session,
    close_user_sessions,
    cookie_name,
    open_session,
    set_session_cookie,
)
from utils.audit import log_event
from utils.auth_context import login_required
from utils.roles import effective_role, filter_role_names

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

MIN_PASSWORD_LENGTH = 8


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _clean_name(value):
    if not isinstance(value, str):
        return None
    return value.strip()[:80] or None


def _signup_role(admin_code):
    """PATIENT unless a matching admin signup code was supplied; None on a bad code."""
    if not admin_code:
        return ROLE_PATIENT
    expected = current_app.config.get("ADMIN_SIGNUP_CODE")
    if expected and secrets.compare_digest(str(admin_code), expected):
        return ROLE_ADMIN
    return None


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    email = email.strip().lower() if isinstance(email, str) else ""
    password = data.get("password") or ""

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return jsonify(error=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    role_name = _signup_role(data.get("admin_code"))
    if role_name is None:
        log_event("REGISTER_FAIL_ADMIN_CODE", metadata={"email": email})
        return jsonify(error="Invalid admin code"), 403

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=_clean_name(data.get("first_name")),
        last_name=_clean_name(data.get("last_name")),
    )
    user.roles = Role.query.filter_by(name=role_name).all()
    db.session.add(user)
    db.session.commit()

    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"role": role_name})
    return jsonify(message="Registered successfully", id=user.id), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    email = email.strip().lower() if isinstance(email, str) else ""
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if user is None or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)

    # one live session per user
    closed = close_user_sessions(user.id)
    raw_token = open_session(user.id)

    role = effective_role(user.roles)
    resp = jsonify(message="Login OK", id=user.id, role=role)
    set_session_cookie(resp, raw_token)
    issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"closed_sessions": closed, "role": role})
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    user = g.user
    return jsonify(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        specialty=user.specialty,
        roles=filter_role_names(user.roles),
        role=effective_role(user.roles),
    ), 200


@auth_bp.post("/logout")
@login_required
def logout():
    close_session(request.cookies.get(cookie_name()))
    log_event("LOGOUT", user_id=g.user.id)
    return clear_session_cookie(jsonify(message="Logged out")), 200

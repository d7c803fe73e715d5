from flask import Blueprint, jsonify, g, request

from models import db
from models.audit_log import AuditLog
from models.chamber import CHAMBER_STATUSES
from models.facility import Facility
from models.user import User, Role
from security.rbac import require_roles
from utils.audit import log_event
from utils.parsing import parse_int, parse_text
from utils.roles import filter_role_names
from utils.serializers import chamber_json
from utils.services import chamber_service

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# ---------- facilities ----------
@admin_bp.post("/facilities")
@require_roles("ADMIN")
def create_facility():
    data = request.get_json(silent=True) or {}
    try:
        name = parse_text(data.get("name"), "name")
        address = parse_text(data.get("address"), "address") or None
    except ValueError as exc:
        return jsonify(error=str(exc)), 400
    if not name:
        return jsonify(error="Facility name required"), 400

    facility = Facility(name=name, address=address)
    db.session.add(facility)
    db.session.commit()

    log_event("FACILITY_CREATE", user_id=g.user.id, entity="facility", entity_id=facility.id)
    return jsonify(id=facility.id, name=facility.name, address=facility.address), 201


@admin_bp.get("/facilities")
@require_roles("ADMIN", "PROVIDER")
def list_facilities():
    rows = Facility.query.filter_by(is_active=True).order_by(Facility.name.asc()).all()
    return jsonify([
        {"id": f.id, "name": f.name, "address": f.address}
        for f in rows
    ]), 200


# ---------- chambers ----------
@admin_bp.post("/chambers")
@require_roles("ADMIN")
def create_chamber():
    data = request.get_json(silent=True) or {}
    equipment = data.get("equipment") or []
    try:
        name = parse_text(data.get("name"), "name")
        chamber_type = parse_text(data.get("type"), "type")
        status = (parse_text(data.get("status"), "status") or "available").lower()
        facility_id = parse_int(data.get("facility_id"), "facility_id")
        floor = parse_int(data.get("floor", 1), "floor")
    except ValueError as exc:
        return jsonify(error=str(exc)), 400
    if not name or not chamber_type:
        return jsonify(error="name and type are required"), 400
    if floor < 0:
        return jsonify(error="floor must be >= 0"), 400
    if not isinstance(equipment, list) or not all(isinstance(e, str) for e in equipment):
        return jsonify(error="equipment must be a list of strings"), 400
    if status not in CHAMBER_STATUSES:
        return jsonify(error="Invalid status", allowed=list(CHAMBER_STATUSES)), 400

    chamber = chamber_service().create_chamber(
        facility_id=facility_id,
        name=name,
        chamber_type=chamber_type,
        floor=floor,
        equipment=[e.strip() for e in equipment if e.strip()],
        status=status,
    )

    log_event("CHAMBER_CREATE", user_id=g.user.id, entity="chamber", entity_id=chamber.id)
    return jsonify(chamber_json(chamber)), 201


# ---------- users ----------
@admin_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)

    users = q.order_by(User.created_at.desc()).limit(200).all()
    return jsonify([
        {
            "id": u.id,
            "email": u.email,
            "first_name": u.first_name,
            "last_name": u.last_name,
            "specialty": u.specialty,
            "roles": filter_role_names(u.roles),
            "created_at": u.created_at.isoformat(),
        }
        for u in users
    ]), 200


@admin_bp.post("/users/<int:user_id>/roles")
@require_roles("ADMIN")
def update_user_roles(user_id: int):
    data = request.get_json(silent=True) or {}
    roles = data.get("roles")
    if not isinstance(roles, list) or not roles:
        return jsonify(error="roles must be a non-empty list"), 400

    role_names = []
    for name in roles:
        if isinstance(name, str) and name.strip():
            role_names.append(name.strip().upper())
    if not role_names:
        return jsonify(error="roles must include valid role names"), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    available_roles = Role.query.filter(Role.name.in_(set(role_names))).all()
    missing = set(role_names) - {r.name for r in available_roles}
    if missing:
        return jsonify(error="Unknown role(s)", missing=sorted(missing)), 400

    if user.id == g.user.id and "ADMIN" not in role_names and "SUPER_ADMIN" not in role_names:
        return jsonify(error="Cannot remove your own ADMIN role"), 403

    user.roles = available_roles
    specialty = data.get("specialty")
    if isinstance(specialty, str):
        user.specialty = specialty.strip() or None
    db.session.commit()

    log_event(
        "ADMIN_UPDATE_ROLES",
        user_id=g.user.id,
        entity="user",
        entity_id=user.id,
        metadata={"roles": role_names},
    )
    return jsonify(message="Roles updated", roles=filter_role_names(role_names)), 200


# ---------- audit log ----------
@admin_bp.get("/audit-logs")
@require_roles("SUPER_ADMIN")
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    action = request.args.get("action")
    user_id = request.args.get("user_id", type=int)

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "created_at": r.timestamp.isoformat() if r.timestamp else None,
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "metadata": r.details,
        }
        for r in rows
    ]), 200

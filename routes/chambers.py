from datetime import date

from flask import Blueprint, request, jsonify, g

from models.chamber import CHAMBER_STATUSES, MAINTENANCE_TYPES
from scheduling.errors import NoAvailableChamber
from scheduling.types import MOBILITY_LEVELS, AssignmentFactors, ChamberFilters, MaintenanceRequest, TimeWindow
from security.rbac import require_roles
from utils.audit import log_event
from utils.auth_context import login_required
from utils.parsing import parse_int, parse_iso, parse_text
from utils.serializers import booking_json, chamber_json, maintenance_json, schedule_entry_json
from utils.services import chamber_service

chamber_bp = Blueprint("chambers", __name__, url_prefix="/chambers")


def _window_from_args(args):
    return TimeWindow(parse_iso(args.get("start_time")), parse_iso(args.get("end_time")))


# ---------- listing ----------
@chamber_bp.get("")
@login_required
def list_chambers():
    rows = chamber_service().list_chambers(
        facility_id=request.args.get("facility_id", type=int),
        status=request.args.get("status") or None,
        floor=request.args.get("floor", type=int),
        chamber_type=request.args.get("type") or None,
    )
    return jsonify(count=len(rows), chambers=[chamber_json(c) for c in rows]), 200


@chamber_bp.get("/<int:chamber_id>")
@require_roles("ADMIN", "PROVIDER")
def get_chamber(chamber_id: int):
    overview = chamber_service().chamber_overview(chamber_id)
    return jsonify(
        chamber=chamber_json(overview.chamber),
        active_bookings=[booking_json(b) for b in overview.active_bookings],
        schedule=[schedule_entry_json(s) for s in overview.upcoming_schedule],
        maintenance=[maintenance_json(m) for m in overview.open_maintenance],
    ), 200


@chamber_bp.put("/<int:chamber_id>/status")
@require_roles("ADMIN")
def update_chamber_status(chamber_id: int):
    data = request.get_json(silent=True) or {}
    try:
        status = parse_text(data.get("status"), "status").lower()
    except ValueError as exc:
        return jsonify(error=str(exc)), 400
    if status not in CHAMBER_STATUSES:
        return jsonify(error="Invalid status", allowed=list(CHAMBER_STATUSES)), 400

    chamber = chamber_service().update_chamber_status(chamber_id, status)

    log_event("CHAMBER_STATUS_UPDATE", user_id=g.user.id, entity="chamber", entity_id=chamber_id,
              metadata={"status": status})
    return jsonify(message="Chamber status updated", chamber=chamber_json(chamber)), 200


# ---------- availability / assignment ----------
@chamber_bp.get("/check/availability")
@login_required
def check_availability():
    facility_id = request.args.get("facility_id", type=int)
    if not facility_id:
        return jsonify(error="facility_id is required"), 400
    try:
        window = _window_from_args(request.args)
    except (TypeError, ValueError):
        return jsonify(error="start_time and end_time must be ISO datetimes with end after start"), 400

    equipment = request.args.get("equipment") or ""
    filters = ChamberFilters(
        type=request.args.get("type") or None,
        floor=request.args.get("floor", type=int),
        equipment=frozenset(e.strip() for e in equipment.split(",") if e.strip()),
    )

    rows = chamber_service().get_available_chambers(facility_id, window, filters)
    return jsonify(count=len(rows), chambers=[chamber_json(c) for c in rows]), 200


@chamber_bp.post("/assign")
@login_required
def assign_optimal_chamber():
    """Preview which chamber smart assignment would pick; nothing is booked."""
    data = request.get_json(silent=True) or {}
    try:
        service_type = parse_text(data.get("service_type"), "service_type")
        facility_id = parse_int(data.get("facility_id"), "facility_id")
        window = TimeWindow.from_duration(parse_iso(data.get("start_time")), parse_int(data.get("duration"), "duration"))
        doctor_preference = tuple(parse_int(v, "doctor_preference") for v in (data.get("doctor_preference") or []))
    except (TypeError, ValueError) as exc:
        return jsonify(error=str(exc)), 400
    if not service_type:
        return jsonify(error="service_type is required"), 400

    equipment = data.get("equipment_needed") or []
    if not isinstance(equipment, list) or not all(isinstance(e, str) for e in equipment):
        return jsonify(error="equipment_needed must be a list of strings"), 400
    mobility = data.get("patient_mobility")
    if mobility is not None and mobility not in MOBILITY_LEVELS:
        return jsonify(error=f"patient_mobility must be one of {', '.join(MOBILITY_LEVELS)}"), 400

    factors = AssignmentFactors(
        service_type=service_type,
        duration=window.minutes,
        equipment_needed=tuple(equipment),
        doctor_preference=doctor_preference,
        patient_mobility=mobility,
    )
    picked = chamber_service().assign_optimal_chamber(facility_id, window, factors)
    if picked is None:
        raise NoAvailableChamber()

    return jsonify(
        chamber=chamber_json(picked.chamber),
        score=picked.score,
        today_usage_count=picked.today_usage_count,
    ), 200


# ---------- utilization ----------
@chamber_bp.get("/<int:chamber_id>/utilization")
@require_roles("ADMIN", "PROVIDER")
def chamber_utilization(chamber_id: int):
    date_str = request.args.get("date")
    try:
        day = date.fromisoformat(date_str) if date_str else chamber_service().clock().date()
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    u = chamber_service().utilization(chamber_id, day)
    return jsonify(utilization={
        "chamber_id": u.chamber_id,
        "date": u.date.isoformat(),
        "total_bookings": u.total_bookings,
        "total_minutes_occupied": u.total_minutes_occupied,
        "total_minutes_available": u.total_minutes_available,
        "occupancy_rate": u.occupancy_rate,
        "average_booking_duration": u.average_booking_duration,
    }), 200


# ---------- maintenance ----------
@chamber_bp.post("/maintenance")
@require_roles("ADMIN")
def schedule_maintenance():
    data = request.get_json(silent=True) or {}
    try:
        mtype = parse_text(data.get("type"), "type").lower()
    except ValueError as exc:
        return jsonify(error=str(exc)), 400
    if mtype not in MAINTENANCE_TYPES:
        return jsonify(error="Invalid maintenance type", allowed=list(MAINTENANCE_TYPES)), 400

    try:
        req = MaintenanceRequest(
            chamber_id=parse_int(data.get("chamber_id"), "chamber_id"),
            type=mtype,
            scheduled_at=parse_iso(data.get("scheduled_at")),
            notes=parse_text(data.get("notes"), "notes") or None,
            assigned_to=parse_int(data["assigned_to"], "assigned_to") if data.get("assigned_to") is not None else None,
        )
    except (TypeError, ValueError) as exc:
        return jsonify(error=str(exc)), 400

    record = chamber_service().schedule_maintenance(req)

    log_event("CHAMBER_MAINTENANCE_SCHEDULE", user_id=g.user.id, entity="chamber", entity_id=req.chamber_id,
              metadata={"maintenance_id": record.id, "type": mtype})
    return jsonify(message="Maintenance scheduled", maintenance=maintenance_json(record)), 201


@chamber_bp.put("/maintenance/<int:maintenance_id>/complete")
@require_roles("ADMIN")
def complete_maintenance(maintenance_id: int):
    record = chamber_service().complete_maintenance(maintenance_id)

    log_event("CHAMBER_MAINTENANCE_COMPLETE", user_id=g.user.id, entity="chamber", entity_id=record.chamber_id,
              metadata={"maintenance_id": maintenance_id})
    return jsonify(message="Maintenance completed", maintenance=maintenance_json(record)), 200

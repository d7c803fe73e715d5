from datetime import datetime

from flask import Blueprint, request, jsonify, current_app

from models import db
from models.user import User
from scheduling.errors import ConflictDetected, NoAvailableChamber
from scheduling.types import (
    MOBILITY_LEVELS,
    ROLE_PROVIDER,
    BookingFilters,
    CreateBookingRequest,
    TimeWindow,
    UpdateBookingRequest,
)
from utils.audit import log_event
from utils.auth_context import current_actor, login_required
from utils.parsing import parse_date_or_datetime, parse_int, parse_iso, parse_text
from utils.serializers import booking_json
from utils.services import booking_service, schedule_projections

booking_bp = Blueprint("bookings", __name__, url_prefix="/bookings")

PAYMENT_STATUSES = ("pending", "paid", "partial", "refunded")


def _bad_request(message: str):
    return jsonify(error=message), 400


def _parse_duration(value) -> int:
    duration = parse_int(value, "duration")
    lo = current_app.config.get("BOOKING_MIN_DURATION_MINUTES", 15)
    hi = current_app.config.get("BOOKING_MAX_DURATION_MINUTES", 480)
    if not lo <= duration <= hi:
        raise ValueError(f"duration must be between {lo} and {hi} minutes")
    return duration


def _str_list(value, name: str):
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{name} must be a list of strings")
    return tuple(v.strip() for v in value if v.strip())


def _is_provider(user_id: int) -> bool:
    user = db.session.get(User, user_id)
    return user is not None and ROLE_PROVIDER in user.role_names


def _conflict_json(b, full: bool):
    if full:
        return booking_json(b)
    # patients only learn what is blocking, not whose booking it is
    return {
        "id": b.id,
        "chamber_id": b.chamber_id,
        "start_time": b.start_time.isoformat(),
        "end_time": b.end_time.isoformat(),
    }


# ---------- list / detail ----------
@booking_bp.get("")
@login_required
def list_bookings():
    try:
        filters = BookingFilters(
            facility_id=request.args.get("facility_id", type=int),
            patient_id=request.args.get("patient_id", type=int),
            doctor_id=request.args.get("doctor_id", type=int),
            chamber_id=request.args.get("chamber_id", type=int),
            status=request.args.get("status") or None,
            start_date=parse_iso(request.args["start_date"]) if request.args.get("start_date") else None,
            end_date=parse_iso(request.args["end_date"]) if request.args.get("end_date") else None,
        )
    except ValueError:
        return _bad_request("Invalid date. Use ISO e.g. 2026-01-20T18:00:00")

    rows = schedule_projections().list_bookings(current_actor(), filters)
    return jsonify(count=len(rows), bookings=[booking_json(b) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = schedule_projections().get_booking(current_actor(), booking_id)
    return jsonify(booking_json(booking)), 200


# ---------- create ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    actor = current_actor()

    for field in ("doctor_id", "facility_id", "start_time", "duration", "service_type"):
        if data.get(field) in (None, ""):
            return _bad_request(f"{field} is required")

    try:
        doctor_id = parse_int(data["doctor_id"], "doctor_id")
        facility_id = parse_int(data["facility_id"], "facility_id")
        patient_id = parse_int(data["patient_id"], "patient_id") if data.get("patient_id") is not None else actor.id
        chamber_id = parse_int(data["chamber_id"], "chamber_id") if data.get("chamber_id") is not None else None
        start_time = parse_iso(data["start_time"])
        booking_date = (
            parse_date_or_datetime(data["booking_date"]) if data.get("booking_date") else start_time.date()
        )
        duration = _parse_duration(data["duration"])
        equipment_needed = _str_list(data.get("equipment_needed"), "equipment_needed")
        notes = parse_text(data.get("notes"), "notes") or None
        doctor_preference = tuple(
            parse_int(v, "doctor_preference") for v in (data.get("doctor_preference") or [])
        )
    except (ValueError, TypeError) as exc:
        return _bad_request(str(exc))

    if isinstance(booking_date, datetime):
        booking_date = booking_date.date()

    service_type = str(data["service_type"]).strip()
    mobility = data.get("patient_mobility")
    if mobility is not None and mobility not in MOBILITY_LEVELS:
        return _bad_request(f"patient_mobility must be one of {', '.join(MOBILITY_LEVELS)}")

    # patients book for themselves only
    if not actor.sees_all_bookings and patient_id != actor.id:
        return jsonify(error="Patients can only book for themselves"), 403
    if db.session.get(User, patient_id) is None:
        return jsonify(error="Patient not found"), 404
    if not _is_provider(doctor_id):
        return jsonify(error="Doctor not found"), 404

    req = CreateBookingRequest(
        patient_id=patient_id,
        doctor_id=doctor_id,
        facility_id=facility_id,
        booking_date=booking_date,
        start_time=start_time,
        duration=duration,
        service_type=service_type,
        created_by=actor.id,
        notes=notes,
        chamber_id=chamber_id,
        equipment_needed=equipment_needed,
        patient_mobility=mobility,
        doctor_preference=doctor_preference,
    )

    try:
        booking = booking_service().create_booking(req)
    except (ConflictDetected, NoAvailableChamber) as exc:
        log_event(
            "BOOKING_FAIL_" + exc.code,
            user_id=actor.id,
            entity="chamber",
            entity_id=chamber_id,
            metadata={"start_time": start_time.isoformat(), "duration": duration},
        )
        raise

    log_event(
        "BOOKING_CREATE",
        user_id=actor.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"chamber_id": booking.chamber_id, "auto_assigned": chamber_id is None},
    )
    return jsonify(message="Booking created successfully", booking=booking_json(booking)), 201


# ---------- update ----------
@booking_bp.put("/<int:booking_id>")
@login_required
def update_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    if "status" in data:
        return _bad_request("Use the confirm, cancel or complete endpoints to change status")

    try:
        changes = UpdateBookingRequest(
            start_time=parse_iso(data["start_time"]) if data.get("start_time") else None,
            duration=_parse_duration(data["duration"]) if data.get("duration") is not None else None,
            chamber_id=parse_int(data["chamber_id"], "chamber_id") if data.get("chamber_id") is not None else None,
            notes=data.get("notes") if isinstance(data.get("notes"), str) else None,
            payment_status=data.get("payment_status"),
        )
    except ValueError as exc:
        return _bad_request(str(exc))

    if changes.payment_status is not None and changes.payment_status not in PAYMENT_STATUSES:
        return _bad_request(f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}")

    actor = current_actor()
    booking = booking_service().update_booking(booking_id, changes, actor)

    log_event("BOOKING_UPDATE", user_id=actor.id, entity="booking", entity_id=booking_id)
    return jsonify(message="Booking updated successfully", booking=booking_json(booking)), 200


# ---------- status transitions ----------
def _cancel(booking_id: int):
    data = request.get_json(silent=True) or {}
    try:
        reason = parse_text(data.get("reason"), "reason") or None
    except ValueError as exc:
        return _bad_request(str(exc))

    actor = current_actor()
    booking = booking_service().cancel_booking(booking_id, actor, reason=reason)

    log_event("BOOKING_CANCEL", user_id=actor.id, entity="booking", entity_id=booking_id, metadata={"reason": reason})
    return jsonify(message="Booking cancelled successfully", booking=booking_json(booking)), 200


@booking_bp.delete("/<int:booking_id>")
@login_required
def delete_booking(booking_id: int):
    return _cancel(booking_id)


@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    return _cancel(booking_id)


@booking_bp.post("/<int:booking_id>/confirm")
@login_required
def confirm_booking(booking_id: int):
    actor = current_actor()
    booking = booking_service().confirm_booking(booking_id, actor)

    log_event("BOOKING_CONFIRM", user_id=actor.id, entity="booking", entity_id=booking_id)
    return jsonify(message="Booking confirmed successfully", booking=booking_json(booking)), 200


@booking_bp.post("/<int:booking_id>/complete")
@login_required
def complete_booking(booking_id: int):
    actor = current_actor()
    booking = booking_service().complete_booking(booking_id, actor)

    log_event("BOOKING_COMPLETE", user_id=actor.id, entity="booking", entity_id=booking_id)
    return jsonify(message="Booking completed successfully", booking=booking_json(booking)), 200


# ---------- conflict pre-check ----------
@booking_bp.get("/check/conflicts")
@login_required
def check_conflicts():
    doctor_id = request.args.get("doctor_id", type=int)
    start_raw = request.args.get("start_time")
    end_raw = request.args.get("end_time")
    exclude_id = request.args.get("exclude_booking_id", type=int)

    if not doctor_id or not start_raw or not end_raw:
        return _bad_request("doctor_id, start_time, and end_time are required")
    try:
        window = TimeWindow(parse_iso(start_raw), parse_iso(end_raw))
    except ValueError:
        return _bad_request("Invalid window. Use ISO datetimes with end_time after start_time")

    conflicts = booking_service().check_conflicts(doctor_id, window, exclude_booking_id=exclude_id)
    full = current_actor().sees_all_bookings
    return jsonify(
        has_conflicts=bool(conflicts),
        count=len(conflicts),
        conflicts=[_conflict_json(b, full) for b in conflicts],
    ), 200

from datetime import datetime

from flask import Blueprint, request, jsonify

from utils.auth_context import current_actor, login_required
from utils.parsing import parse_date_or_datetime
from utils.serializers import booking_json
from utils.services import schedule_projections

schedule_bp = Blueprint("schedule", __name__, url_prefix="/schedule")


def _iso(value):
    return value.isoformat()


def _range_args():
    start_raw = request.args.get("start_date")
    end_raw = request.args.get("end_date")
    if not start_raw or not end_raw:
        raise ValueError("start_date and end_date are required")
    return parse_date_or_datetime(start_raw), parse_date_or_datetime(end_raw)


@schedule_bp.get("/daily")
@login_required
def daily_schedule():
    facility_id = request.args.get("facility_id", type=int)
    if not facility_id:
        return jsonify(error="facility_id is required"), 400
    try:
        day = parse_date_or_datetime(request.args["date"]) if request.args.get("date") else datetime.utcnow().date()
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    rows = schedule_projections().daily(current_actor(), facility_id, day)
    return jsonify(date=_iso(day), count=len(rows), bookings=[booking_json(b) for b in rows]), 200


@schedule_bp.get("/weekly")
@login_required
def weekly_schedule():
    facility_id = request.args.get("facility_id", type=int)
    if not facility_id:
        return jsonify(error="facility_id is required"), 400
    try:
        start = (
            parse_date_or_datetime(request.args["start_date"])
            if request.args.get("start_date") else datetime.utcnow().date()
        )
    except ValueError:
        return jsonify(error="Invalid start_date. Use YYYY-MM-DD"), 400

    rows = schedule_projections().weekly(current_actor(), facility_id, start)
    return jsonify(start_date=_iso(start), count=len(rows), bookings=[booking_json(b) for b in rows]), 200


@schedule_bp.get("/doctor/<int:doctor_id>")
@login_required
def doctor_schedule(doctor_id: int):
    try:
        start, end = _range_args()
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    rows = schedule_projections().provider(current_actor(), doctor_id, start, end)
    return jsonify(
        doctor_id=doctor_id,
        start_date=_iso(start),
        end_date=_iso(end),
        count=len(rows),
        bookings=[booking_json(b) for b in rows],
    ), 200


@schedule_bp.get("/chamber/<int:chamber_id>")
@login_required
def chamber_schedule(chamber_id: int):
    try:
        start, end = _range_args()
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    rows = schedule_projections().chamber(current_actor(), chamber_id, start, end)
    return jsonify(
        chamber_id=chamber_id,
        start_date=_iso(start),
        end_date=_iso(end),
        count=len(rows),
        bookings=[booking_json(b) for b in rows],
    ), 200

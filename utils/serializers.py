def _iso(value):
    return value.isoformat() if value else None


def chamber_json(c):
    return {
        "id": c.id,
        "facility_id": c.facility_id,
        "name": c.name,
        "floor": c.floor,
        "type": c.type,
        "equipment": sorted(c.equipment or []),
        "status": c.status,
    }


def booking_json(b):
    return {
        "id": b.id,
        "patient_id": b.patient_id,
        "doctor_id": b.doctor_id,
        "chamber_id": b.chamber_id,
        "facility_id": b.facility_id,
        "booking_date": _iso(b.booking_date),
        "start_time": _iso(b.start_time),
        "end_time": _iso(b.end_time),
        "duration": b.duration,
        "service_type": b.service_type,
        "notes": b.notes,
        "status": b.status,
        "payment_status": b.payment_status,
        "created_by": b.created_by,
        "created_at": _iso(b.created_at),
        "cancelled_at": _iso(b.cancelled_at),
        "cancel_reason": b.cancel_reason,
    }


def schedule_entry_json(s):
    return {
        "id": s.id,
        "chamber_id": s.chamber_id,
        "booking_id": s.booking_id,
        "status": s.status,
        "start_time": _iso(s.start_time),
        "end_time": _iso(s.end_time),
    }


def maintenance_json(m):
    return {
        "id": m.id,
        "chamber_id": m.chamber_id,
        "type": m.type,
        "status": m.status,
        "scheduled_at": _iso(m.scheduled_at),
        "completed_at": _iso(m.completed_at),
        "notes": m.notes,
        "assigned_to": m.assigned_to,
    }

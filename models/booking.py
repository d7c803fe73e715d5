from datetime import datetime
from models.db import db

ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")
_ACTIVE_CLAUSE = "status IN ('pending', 'confirmed')"


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    patient_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    chamber_id = db.Column(db.Integer, db.ForeignKey("chambers.id"), nullable=False, index=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)

    booking_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)
    duration = db.Column(db.Integer, nullable=False)  # minutes

    service_type = db.Column(db.String(60), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending")
    # status values: pending, confirmed, completed, cancelled
    payment_status = db.Column(db.String(20), nullable=False, default="pending")

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    schedule = db.relationship("ChamberSchedule", back_populates="booking", uselist=False)

    __table_args__ = (
        # Storage-level guard against racing creates: one active booking per
        # chamber/doctor start instant. Overlaps are caught by the app-level check.
        db.Index(
            "uq_booking_active_chamber_start", "chamber_id", "start_time",
            unique=True,
            sqlite_where=db.text(_ACTIVE_CLAUSE),
            postgresql_where=db.text(_ACTIVE_CLAUSE),
        ),
        db.Index(
            "uq_booking_active_doctor_start", "doctor_id", "start_time",
            unique=True,
            sqlite_where=db.text(_ACTIVE_CLAUSE),
            postgresql_where=db.text(_ACTIVE_CLAUSE),
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES


class ChamberSchedule(db.Model):
    __tablename__ = "chamber_schedules"

    id = db.Column(db.Integer, primary_key=True)
    chamber_id = db.Column(db.Integer, db.ForeignKey("chambers.id"), nullable=False, index=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, unique=True)

    status = db.Column(db.String(20), nullable=False, default="reserved")
    # status values: reserved, occupied, cancelled

    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    booking = db.relationship("Booking", back_populates="schedule")

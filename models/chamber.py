from datetime import datetime
from models.db import db

CHAMBER_STATUSES = ("available", "occupied", "maintenance", "cleaning", "reserved", "disabled")
MAINTENANCE_TYPES = ("cleaning", "repair", "inspection")


class Chamber(db.Model):
    __tablename__ = "chambers"

    id = db.Column(db.Integer, primary_key=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    floor = db.Column(db.Integer, nullable=False, default=1)
    type = db.Column(db.String(60), nullable=False)  # service type the room is fitted for
    equipment = db.Column(db.JSON, nullable=False, default=list)  # list of capability tags

    status = db.Column(db.String(20), nullable=False, default="available")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    facility = db.relationship("Facility", back_populates="chambers")

    __table_args__ = (
        db.UniqueConstraint("facility_id", "name", name="uq_chamber_facility_name"),
    )

    @property
    def equipment_set(self) -> frozenset:
        return frozenset(self.equipment or ())


class ChamberMaintenance(db.Model):
    __tablename__ = "chamber_maintenance"

    id = db.Column(db.Integer, primary_key=True)
    chamber_id = db.Column(db.Integer, db.ForeignKey("chambers.id"), nullable=False, index=True)

    type = db.Column(db.String(20), nullable=False)  # cleaning, repair, inspection
    status = db.Column(db.String(20), nullable=False, default="scheduled")
    # status values: scheduled, in_progress, completed

    scheduled_at = db.Column(db.DateTime, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    assigned_to = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

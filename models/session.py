from datetime import datetime, timedelta
from models.db import db


class AuthSession(db.Model):
    """Server side login session; the cookie carries the raw token."""

    __tablename__ = "sessions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # SHA-256 hex digest of the cookie token
    token_hash = db.Column(db.String(128), unique=True, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = db.Column(db.DateTime, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    revoked = db.Column(db.Boolean, default=False, nullable=False)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    user = db.relationship("User")

    def expired(self, now: datetime) -> bool:
        return self.revoked or self.expires_at <= now

    def idle(self, now: datetime, timeout_seconds: int) -> bool:
        last_seen = self.last_seen_at or self.created_at
        return last_seen + timedelta(seconds=timeout_seconds) <= now

    def touch(self, now: datetime):
        self.last_seen_at = now

# backend/qrattend/models/session.py
"""Training session with schedule, lifecycle status and QR material."""
from datetime import datetime
from enum import Enum
from typing import Optional
from qrattend import db
from qrattend.models.base import BaseModel, enum_values
from qrattend.utils.clock import as_utc

class SessionStatus(Enum):
    """Session lifecycle states."""
    SCHEDULED = 'scheduled'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

# Linear lifecycle: nothing re-enters scheduled or active once left
ALLOWED_TRANSITIONS = {
    SessionStatus.SCHEDULED: frozenset({SessionStatus.ACTIVE, SessionStatus.CANCELLED}),
    SessionStatus.ACTIVE: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}

def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    """Check a status change against the lifecycle table."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())

class TrainingSession(BaseModel):
    """A scheduled meeting of a training that trainees attend."""

    __tablename__ = 'sessions'

    training_id = db.Column(db.Integer, db.ForeignKey('trainings.id'), nullable=False)
    trainer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    title = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(255), nullable=True)

    # Scheduling (wall-clock, zone comes from SESSION_TIMEZONE)
    scheduled_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    actual_start_time = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(
        db.Enum(SessionStatus, name='session_status', values_callable=enum_values),
        nullable=False,
        default=SessionStatus.SCHEDULED,
        index=True
    )

    # QR material
    qr_token = db.Column(db.String(64), unique=True, nullable=True)
    qr_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Classification thresholds
    late_threshold_minutes = db.Column(db.Integer, default=15)
    partial_threshold_minutes = db.Column(db.Integer, default=30)

    # Relationships
    trainer = db.relationship('User', foreign_keys=[trainer_id])
    participants = db.relationship('SessionParticipant', backref='session', lazy='dynamic')

    def is_qr_expired(self, now: datetime) -> bool:
        """QR tokens lapse lazily; nothing revokes them at expiry."""
        expires_at = as_utc(self.qr_expires_at)
        return expires_at is not None and expires_at <= now

    def is_enrolled(self, user_id: int) -> bool:
        return self.participants.filter_by(user_id=user_id).first() is not None

    def participant_ids(self) -> list:
        return [p.user_id for p in self.participants]

    @property
    def qr_expires_at_utc(self) -> Optional[datetime]:
        return as_utc(self.qr_expires_at)

    def to_dict(self, include_qr: bool = False):
        """Convert to dictionary."""
        exclude = [] if include_qr else ['qr_token']
        return super().to_dict(exclude=exclude)

    def __repr__(self):
        return f'<TrainingSession {self.id} {self.status.value if self.status else None}>'

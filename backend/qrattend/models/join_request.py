"""Trainee requests to be marked present without scanning."""
from enum import Enum
from qrattend import db
from qrattend.models.base import BaseModel, enum_values
from qrattend.utils.clock import utcnow

class JoinRequestStatus(Enum):
    """Join request states."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

class JoinRequest(BaseModel):
    """One request per (session, user); requested_at drives classification."""

    __tablename__ = 'join_requests'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'user_id', name='uq_join_requests_session_user'),
    )

    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    status = db.Column(
        db.Enum(JoinRequestStatus, name='join_request_status', values_callable=enum_values),
        nullable=False,
        default=JoinRequestStatus.PENDING,
        index=True
    )
    requested_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    processed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    session = db.relationship('TrainingSession')

    def __repr__(self):
        return f'<JoinRequest {self.session_id}-{self.user_id} {self.status.value if self.status else None}>'

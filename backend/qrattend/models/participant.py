"""Session enrollment."""
from qrattend import db
from qrattend.models.base import BaseModel
from qrattend.utils.clock import utcnow

class SessionParticipant(BaseModel):
    """Who is enrolled in a session and may attend it."""

    __tablename__ = 'session_participants'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'user_id', name='uq_session_participants_session_user'),
    )

    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    assigned_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    user = db.relationship('User')

    def __repr__(self):
        return f'<SessionParticipant {self.session_id}-{self.user_id}>'

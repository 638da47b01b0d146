# backend/qrattend/models/attendance.py
"""Attendance ledger row, one per (session, user)."""
from enum import Enum
from qrattend import db
from qrattend.models.base import BaseModel, enum_values

class AttendanceStatus(Enum):
    """Stored status. LATE and PARTIAL are the legacy direct encoding."""
    PRESENT = 'present'
    LATE = 'late'
    PARTIAL = 'partial'
    ABSENT = 'absent'

class AttendanceType(Enum):
    """Fine-grained classification carried next to status=present."""
    ON_TIME = 'on_time'
    LATE = 'late'
    PARTIAL = 'partial'

class Attendance(BaseModel):
    """Attendance record."""

    __tablename__ = 'attendance'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'user_id', name='uq_attendance_session_user'),
    )

    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    status = db.Column(
        db.Enum(AttendanceStatus, name='attendance_status', values_callable=enum_values),
        nullable=False,
        default=AttendanceStatus.ABSENT
    )
    attendance_type = db.Column(
        db.Enum(AttendanceType, name='attendance_type', values_callable=enum_values),
        nullable=True
    )
    join_time = db.Column(db.DateTime(timezone=True), nullable=True)

    # Audit
    qr_token_used = db.Column(db.String(64), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    session = db.relationship('TrainingSession')
    user = db.relationship('User')

    def __repr__(self):
        return f'<Attendance {self.session_id}-{self.user_id} {self.status.value if self.status else None}>'

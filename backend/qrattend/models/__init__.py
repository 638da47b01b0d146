"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole
from .training import Training
from .session import TrainingSession, SessionStatus, can_transition
from .participant import SessionParticipant
from .join_request import JoinRequest, JoinRequestStatus
from .attendance import Attendance, AttendanceStatus, AttendanceType

__all__ = [
    'BaseModel', 'User', 'UserRole', 'Training',
    'TrainingSession', 'SessionStatus', 'can_transition',
    'SessionParticipant', 'JoinRequest', 'JoinRequestStatus',
    'Attendance', 'AttendanceStatus', 'AttendanceType'
]

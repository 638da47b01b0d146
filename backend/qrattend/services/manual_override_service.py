# backend/qrattend/services/manual_override_service.py
"""Trainer/admin override of a participant's attendance."""
import logging

from qrattend import db
from qrattend.models.attendance import AttendanceType
from qrattend.models.session import SessionStatus, TrainingSession
from qrattend.models.user import User
from qrattend.services.base import AttendanceService
from qrattend.services.ledger import AttendanceLedger, AttendanceOutcome
from qrattend.services.results import OperationResult, ReasonCode

MANUAL_STATUSES = ('present', 'late', 'partial', 'absent')

# Requested status -> stored classification
OVERRIDE_TYPES = {
    'present': AttendanceType.ON_TIME,
    'late': AttendanceType.LATE,
    'partial': AttendanceType.PARTIAL,
}

class ManualOverrideService(AttendanceService):

    def set_attendance(self, session_id: int, target_user_id: int, status: str, caller: User) -> OperationResult:
        """Overwrite the attendance row for ``target_user_id``.

        No threshold logic: the trainer's choice is stored as given and
        replaces whatever was there, scan credit included.
        """
        denied = self.authorize_staff(caller, 'set attendance')
        if denied:
            return denied

        session = db.session.get(TrainingSession, session_id)
        if session is None:
            return self.reject(ReasonCode.SESSION_NOT_FOUND, 'Session not found.')

        denied = self.authorize_session(caller, session)
        if denied:
            return denied

        if session.status != SessionStatus.ACTIVE:
            return self.reject(
                ReasonCode.SESSION_NOT_ACTIVE,
                'Attendance can only be changed while the session is active.'
            )

        if db.session.get(User, target_user_id) is None:
            return self.reject(ReasonCode.INVALID_PAYLOAD, 'Unknown userId.')

        if status == 'absent':
            outcome, join_time = AttendanceOutcome.absent(), None
        else:
            outcome, join_time = AttendanceOutcome.present_as(OVERRIDE_TYPES[status]), self.now()

        AttendanceLedger.write(session.id, target_user_id, outcome, join_time=join_time)
        db.session.commit()

        self.log(
            logging.INFO,
            'user %s set attendance of user %s in session %s to %s',
            caller.id, target_user_id, session.id, status
        )
        return OperationResult.ok(
            f'Attendance set to {status}.',
            status=outcome.status_value,
            attendance_type=outcome.type_value
        )

# backend/qrattend/services/scan_service.py
"""QR scan attendance."""
import logging
from typing import Optional

from qrattend import db
from qrattend.models.attendance import AttendanceType
from qrattend.models.session import SessionStatus, TrainingSession
from qrattend.models.user import User
from qrattend.services.base import AttendanceService
from qrattend.services.ledger import AttendanceLedger, AttendanceOutcome, NOT_CREDITED
from qrattend.services.results import OperationResult, ReasonCode

INACTIVE_MESSAGES = {
    SessionStatus.SCHEDULED: 'Session has not started yet.',
    SessionStatus.COMPLETED: 'Session has already ended.',
    SessionStatus.CANCELLED: 'Session was cancelled.',
}

SUCCESS_MESSAGES = {
    AttendanceType.ON_TIME: 'Attendance marked successfully.',
    AttendanceType.LATE: 'Attendance marked as LATE.',
    AttendanceType.PARTIAL: 'Attendance marked as PARTIAL.',
}

class ScanService(AttendanceService):
    """Validates a QR scan claim and credits the scanning trainee."""

    def mark_attendance(
        self,
        token: str,
        session_id: int,
        caller: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> OperationResult:
        """Credit ``caller`` for ``session_id`` if ``token`` is the live QR token.

        Checks run in a fixed order and stop at the first failure; nothing is
        written unless all of them pass. A trainee who is already credited
        gets the stored classification back unchanged.
        """
        session = db.session.get(TrainingSession, session_id)
        if session is None:
            return self.reject(ReasonCode.SESSION_NOT_FOUND, 'Session not found.')

        if session.status != SessionStatus.ACTIVE:
            return self.reject(
                ReasonCode.SESSION_INACTIVE,
                INACTIVE_MESSAGES.get(session.status, 'Session is not active.')
            )

        now = self.now()

        # Expiry first: a stale token that also mismatches reports as expired
        if session.qr_expires_at is None or session.is_qr_expired(now):
            return self.reject(ReasonCode.QR_EXPIRED, 'QR code has expired. Please refresh.')

        if session.qr_token != token:
            return self.reject(ReasonCode.QR_TOKEN_MISMATCH, 'QR code is outdated. Please refresh.')

        if not session.is_enrolled(caller.id):
            return self.reject(ReasonCode.NOT_ENROLLED, f'You are not enrolled in "{session.title}".')

        existing = AttendanceLedger.outcome_of(AttendanceLedger.get(session.id, caller.id))
        if existing is not None and existing.present:
            return self._already_marked(existing)

        classification = self.classify(now, session)
        written = AttendanceLedger.write(
            session.id,
            caller.id,
            AttendanceOutcome.present_as(classification),
            join_time=now,
            replace_when=NOT_CREDITED,
            qr_token_used=token,
            ip_address=ip_address,
            user_agent=user_agent
        )
        db.session.commit()

        if not written:
            # A concurrent scan or approval credited this trainee first
            committed = AttendanceLedger.outcome_of(AttendanceLedger.reload(session.id, caller.id))
            return self._already_marked(committed)

        self.log(logging.INFO, 'user %s marked %s for session %s', caller.id, classification.value, session.id)
        return OperationResult.ok(
            SUCCESS_MESSAGES[classification],
            status=AttendanceOutcome.present_as(classification).status_value,
            attendance_type=classification.value
        )

    def _already_marked(self, outcome: AttendanceOutcome) -> OperationResult:
        return OperationResult.ok(
            f'Attendance already marked ({outcome.type_value}).',
            status=outcome.status_value,
            attendance_type=outcome.type_value
        )

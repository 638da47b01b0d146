# backend/qrattend/services/join_request_service.py
"""Join requests: trainees ask to be marked present, trainers/admins decide.

Approval classifies against the moment the trainee asked (``requested_at``),
never the moment the request was processed, and never overwrites attendance
already credited by a QR scan.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from qrattend import db
from qrattend.models.join_request import JoinRequest, JoinRequestStatus
from qrattend.models.session import SessionStatus, TrainingSession
from qrattend.models.user import User
from qrattend.services.base import AttendanceService
from qrattend.services.ledger import AttendanceLedger, AttendanceOutcome, NOT_TIMED
from qrattend.services.results import OperationResult, ReasonCode
from qrattend.utils.clock import as_utc

ACTIONS = {
    'approve': JoinRequestStatus.APPROVED,
    'reject': JoinRequestStatus.REJECTED,
}

OPEN_SESSION_STATES = (SessionStatus.SCHEDULED, SessionStatus.ACTIVE)

class JoinRequestService(AttendanceService):
    """Request, withdraw, list and process join requests."""

    def request_join(self, session_id: int, caller: User, notes: Optional[str] = None) -> OperationResult:
        """Create a pending request for (session, caller).

        Any existing row for the pair, whatever its status, is a conflict.
        A trainee retries after rejection by withdrawing the old request.
        """
        session = db.session.get(TrainingSession, session_id)
        if session is None:
            return self.reject(ReasonCode.SESSION_NOT_FOUND, 'Session not found.')

        if session.status not in OPEN_SESSION_STATES:
            return self.reject(ReasonCode.SESSION_INACTIVE, 'Session is no longer accepting requests.')

        if not session.is_enrolled(caller.id):
            return self.reject(ReasonCode.NOT_ENROLLED, f'You are not enrolled in "{session.title}".')

        join_request = JoinRequest(
            session_id=session.id,
            user_id=caller.id,
            status=JoinRequestStatus.PENDING,
            requested_at=self.now(),
            notes=notes
        )
        db.session.add(join_request)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return self.reject(
                ReasonCode.DUPLICATE_REQUEST,
                'You have already requested to join this session.'
            )

        self.log(logging.INFO, 'join request %s created by user %s', join_request.id, caller.id)
        return OperationResult.ok(
            'Join request sent to trainer.',
            status=JoinRequestStatus.PENDING.value,
            http_status=201,
            request=self.serialize(join_request)
        )

    def withdraw(self, request_id: int, caller: User) -> OperationResult:
        """Delete the caller's own pending or rejected request."""
        join_request = db.session.get(JoinRequest, request_id)
        if join_request is None or join_request.user_id != caller.id:
            return self.reject(ReasonCode.REQUEST_NOT_FOUND, 'Attendance request not found.')

        if join_request.status == JoinRequestStatus.APPROVED:
            return self.reject(
                ReasonCode.REQUEST_ALREADY_PROCESSED,
                'Approved requests cannot be withdrawn.'
            )

        db.session.delete(join_request)
        db.session.commit()
        return OperationResult.ok('Join request withdrawn.', status='withdrawn')

    def list_for_session(self, session_id: int, caller: User,
                         status: JoinRequestStatus = JoinRequestStatus.PENDING) -> OperationResult:
        """Approval queue for a session."""
        denied = self.authorize_staff(caller, 'view attendance requests')
        if denied:
            return denied

        session = db.session.get(TrainingSession, session_id)
        if session is None:
            return self.reject(ReasonCode.SESSION_NOT_FOUND, 'Session not found.')

        denied = self.authorize_session(caller, session)
        if denied:
            return denied

        requests = JoinRequest.query.filter_by(
            session_id=session.id, status=status
        ).order_by(JoinRequest.requested_at.asc()).all()

        return OperationResult.ok(
            f'{len(requests)} {status.value} requests.',
            requests=[self.serialize(r) for r in requests]
        )

    def process(self, request_id: int, action: str, caller: User) -> OperationResult:
        """Approve or reject a request.

        The request row is resolved and committed before the ledger is
        touched, so a failure afterwards leaves it decided rather than
        pending; re-running approve then repairs the ledger idempotently.
        Requests may be processed again in any state, which is how a
        rejected request is re-opened. Approval needs a scheduled or active
        session; completed and cancelled sessions keep their attendance.
        """
        denied = self.authorize_staff(caller, 'process attendance requests')
        if denied:
            return denied

        join_request = db.session.get(JoinRequest, request_id)
        if join_request is None:
            return self.reject(ReasonCode.REQUEST_NOT_FOUND, 'Attendance request not found.')

        session = db.session.get(TrainingSession, join_request.session_id)
        if session is None:
            return self.reject(ReasonCode.SESSION_NOT_FOUND, 'Session not found.')

        denied = self.authorize_session(caller, session)
        if denied:
            return denied

        new_status = ACTIONS[action]
        if new_status == JoinRequestStatus.APPROVED and session.status not in OPEN_SESSION_STATES:
            return self.reject(
                ReasonCode.SESSION_NOT_ACTIVE,
                f'Attendance for a {session.status.value} session can no longer change.'
            )

        join_request.status = new_status
        join_request.processed_at = self.now()
        join_request.processed_by = caller.id
        db.session.commit()

        if new_status == JoinRequestStatus.REJECTED:
            self.log(logging.INFO, 'rejected request %s', join_request.id)
            return OperationResult.ok('Attendance request rejected.', status=new_status.value)

        return self._credit(join_request, session)

    def _credit(self, join_request: JoinRequest, session: TrainingSession) -> OperationResult:
        session_id, user_id = join_request.session_id, join_request.user_id

        existing = AttendanceLedger.get(session_id, user_id)
        if self._already_credited(existing):
            return self._keep(AttendanceLedger.outcome_of(existing))

        requested_at = as_utc(join_request.requested_at)
        classification = self.classify(requested_at, session)
        written = AttendanceLedger.write(
            session_id,
            user_id,
            AttendanceOutcome.present_as(classification),
            join_time=requested_at,
            replace_when=NOT_TIMED
        )
        db.session.commit()

        if not written:
            # A QR scan landed between the read and the write
            return self._keep(AttendanceLedger.outcome_of(AttendanceLedger.reload(session_id, user_id)))

        self.log(
            logging.INFO,
            'approved request %s; marked %s for user %s',
            join_request.id, classification.value, user_id
        )
        return OperationResult.ok(
            f'Attendance approved and marked ({classification.value}).',
            status=AttendanceOutcome.present_as(classification).status_value,
            attendance_type=classification.value
        )

    @staticmethod
    def _already_credited(record) -> bool:
        """Credited with a real join time, typically by a QR scan."""
        if record is None or record.join_time is None:
            return False
        return AttendanceLedger.outcome_of(record).present

    @staticmethod
    def _keep(outcome: AttendanceOutcome) -> OperationResult:
        return OperationResult.ok(
            'Already marked present (likely via QR scan).',
            status=outcome.status_value,
            attendance_type=outcome.type_value
        )

    @staticmethod
    def serialize(join_request: JoinRequest) -> dict:
        return join_request.to_dict()

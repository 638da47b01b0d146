# backend/qrattend/services/lifecycle_service.py
"""Session lifecycle: start, QR rotation, completion with absence back-fill, cancel.

Each transition is a conditional UPDATE guarded on the current status, so two
trainers pressing the same button race safely: one update matches, the other
reports an invalid transition.
"""
import logging
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from qrattend import db
from qrattend.models.session import SessionStatus, TrainingSession, can_transition
from qrattend.models.user import User
from qrattend.services.base import AttendanceService
from qrattend.services.classifier import scheduled_instant
from qrattend.services.ledger import AttendanceLedger
from qrattend.services.qr_service import QRService
from qrattend.services.results import OperationResult, ReasonCode

CLEARED_QR = {'qr_token': None, 'qr_expires_at': None}

class LifecycleService(AttendanceService):
    """Drives sessions through scheduled -> active -> completed/cancelled."""

    def start(self, session_id: int, caller: User) -> OperationResult:
        session, denied = self._load(session_id, caller, 'start sessions')
        if denied:
            return denied

        now = self.now()
        token, expires_at = self._mint(now)
        changed = self._transition(session, (SessionStatus.SCHEDULED,), SessionStatus.ACTIVE, {
            'qr_token': token,
            'qr_expires_at': expires_at,
            'actual_start_time': now,
        })
        if changed:
            return changed

        self.log(logging.INFO, 'session %s started by user %s', session.id, caller.id)
        return OperationResult.ok(
            'Session started.',
            status=SessionStatus.ACTIVE.value,
            session=session.to_dict(include_qr=True)
        )

    def refresh_qr(self, session_id: int, caller: User) -> OperationResult:
        """Rotate token and expiry of an active session; status is untouched."""
        session, denied = self._load(session_id, caller, 'refresh QR codes')
        if denied:
            return denied

        token, expires_at = self._mint(self.now())
        updated = TrainingSession.query.filter_by(
            id=session.id, status=SessionStatus.ACTIVE
        ).update({'qr_token': token, 'qr_expires_at': expires_at}, synchronize_session=False)
        db.session.commit()

        if not updated:
            return self.reject(ReasonCode.SESSION_NOT_ACTIVE, 'Only active sessions have a QR code.')

        self.log(logging.INFO, 'QR rotated for session %s', session.id)
        return OperationResult.ok(
            'QR code refreshed.',
            status=SessionStatus.ACTIVE.value,
            session=session.to_dict(include_qr=True)
        )

    def complete(self, session_id: int, caller: User) -> OperationResult:
        session, denied = self._load(session_id, caller, 'complete sessions')
        if denied:
            return denied
        return self._complete(session)

    def cancel(self, session_id: int, caller: User) -> OperationResult:
        """Existing attendance rows are left as they are."""
        session, denied = self._load(session_id, caller, 'cancel sessions')
        if denied:
            return denied

        changed = self._transition(
            session,
            (SessionStatus.SCHEDULED, SessionStatus.ACTIVE),
            SessionStatus.CANCELLED,
            dict(CLEARED_QR)
        )
        if changed:
            return changed

        self.log(logging.INFO, 'session %s cancelled by user %s', session.id, caller.id)
        return OperationResult.ok('Session cancelled.', status=SessionStatus.CANCELLED.value)

    def auto_complete_expired(self, caller: Optional[User] = None) -> OperationResult:
        """Complete every active session whose scheduled end has passed.

        ``caller`` is None when run from the command line.
        """
        if caller is not None and not caller.is_admin():
            return self.reject(ReasonCode.FORBIDDEN, 'Only admins can auto-complete sessions.')

        now = self.now()
        zone = self.settings.get('SESSION_TIMEZONE')
        completed = []
        absent_total = 0

        for session in self._active_sessions():
            session_id = session.id
            ends_at = scheduled_instant(session.scheduled_date, session.end_time, zone)
            if ends_at > now:
                continue
            try:
                result = self._complete(session)
            except SQLAlchemyError:
                current_app.logger.exception(
                    '[%s] auto-complete of session %s failed; it stays active', self.debug_id, session_id
                )
                continue
            if result.success:
                completed.append(session.id)
                absent_total += result.data.get('absentCount', 0)

        self.log(logging.INFO, 'auto-completed %d sessions', len(completed))
        return OperationResult.ok(
            f'Completed {len(completed)} expired sessions.',
            completedSessions=completed,
            absentCount=absent_total
        )

    def qr_payload(self, session_id: int, caller: User) -> OperationResult:
        """Scan URL, expiry and a rendered PNG for the trainer's screen."""
        session, denied = self._load(session_id, caller, 'display QR codes')
        if denied:
            return denied

        if session.status != SessionStatus.ACTIVE or not session.qr_token:
            return self.reject(ReasonCode.SESSION_NOT_ACTIVE, 'Only active sessions have a QR code.')

        scan_url = QRService.build_scan_url(
            self.settings.get('QR_SCAN_BASE_URL', ''),
            session.qr_token,
            session.id
        )
        return OperationResult.ok(
            'QR code generated.',
            status=session.status.value,
            sessionId=session.id,
            scanUrl=scan_url,
            expiresAt=session.qr_expires_at_utc.isoformat() if session.qr_expires_at else None,
            qrImage=QRService.render_data_uri(scan_url)
        )

    def _complete(self, session: TrainingSession) -> OperationResult:
        """Status change and absence back-fill commit together or not at all."""
        try:
            changed = self._transition(session, (SessionStatus.ACTIVE,), SessionStatus.COMPLETED, {
                'actual_end_time': self.now(),
                **CLEARED_QR,
            }, commit=False)
            if changed:
                return changed

            absent_count = AttendanceLedger.backfill_absent(session.id, session.participant_ids())
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        self.log(logging.INFO, 'session %s completed; %d marked absent', session.id, absent_count)
        return OperationResult.ok(
            f'Session completed. {absent_count} participants marked absent.',
            status=SessionStatus.COMPLETED.value,
            absentCount=absent_count
        )

    def _transition(
        self,
        session: TrainingSession,
        sources: Iterable[SessionStatus],
        target: SessionStatus,
        values: dict,
        commit: bool = True
    ) -> Optional[OperationResult]:
        """Apply the update only while the session is still in one of ``sources``.

        With ``commit=False`` the caller owns the transaction.
        """
        sources = tuple(s for s in sources if can_transition(s, target))
        if session.status not in sources:
            return self._invalid(session.status, target)

        values['status'] = target
        updated = TrainingSession.query.filter(
            TrainingSession.id == session.id,
            TrainingSession.status.in_(sources)
        ).update(values, synchronize_session=False)
        if commit:
            db.session.commit()

        if not updated:
            # Another request moved the session first
            db.session.refresh(session)
            return self._invalid(session.status, target)
        return None

    def _invalid(self, current: SessionStatus, target: SessionStatus) -> OperationResult:
        return self.reject(
            ReasonCode.INVALID_TRANSITION,
            f'Cannot move a {current.value} session to {target.value}.'
        )

    def _load(self, session_id: int, caller: User, action: str):
        denied = self.authorize_staff(caller, action)
        if denied:
            return None, denied

        session = db.session.get(TrainingSession, session_id)
        if session is None:
            return None, self.reject(ReasonCode.SESSION_NOT_FOUND, 'Session not found.')

        denied = self.authorize_session(caller, session)
        if denied:
            return None, denied
        return session, None

    def _mint(self, now):
        return QRService.mint(now, self.settings.get('QR_VALIDITY_HOURS', 4))

    @staticmethod
    def _active_sessions():
        return TrainingSession.query.filter_by(status=SessionStatus.ACTIVE).order_by(TrainingSession.id).all()

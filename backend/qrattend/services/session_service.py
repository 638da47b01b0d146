# backend/qrattend/services/session_service.py
"""Trainings, session scheduling and enrollment."""
import logging
from typing import Iterable, Optional

from qrattend import db
from qrattend.models.participant import SessionParticipant
from qrattend.models.session import SessionStatus, TrainingSession
from qrattend.models.training import Training
from qrattend.models.user import User, UserRole
from qrattend.services.base import AttendanceService
from qrattend.services.classifier import scheduled_instant
from qrattend.services.join_request_service import OPEN_SESSION_STATES
from qrattend.services.ledger import conflict_insert
from qrattend.services.results import OperationResult, ReasonCode

class SessionService(AttendanceService):
    """Create trainings and sessions, and manage who is enrolled."""

    def create_training(self, title: str, caller: User, description: Optional[str] = None) -> OperationResult:
        denied = self.authorize_staff(caller, 'create trainings')
        if denied:
            return denied

        training = Training(title=title, description=description)
        db.session.add(training)
        db.session.commit()

        self.log(logging.INFO, 'training %s created by user %s', training.id, caller.id)
        return OperationResult.ok(
            'Training created.',
            http_status=201,
            training=training.to_dict()
        )

    def create_session(self, params: dict, caller: User) -> OperationResult:
        """Schedule a session.

        Trainers schedule their own sessions. Admins may name any trainer or
        leave the session unassigned. Thresholds left out fall back to the
        configured defaults.
        """
        denied = self.authorize_staff(caller, 'create sessions')
        if denied:
            return denied

        training = db.session.get(Training, params['training_id'])
        if training is None or not training.is_active:
            return self.reject(ReasonCode.INVALID_PAYLOAD, 'Training not found.')

        trainer_id, denied = self._resolve_trainer(params.get('trainer_id'), caller)
        if denied:
            return denied

        late = params.get('late_threshold_minutes')
        if late is None:
            late = self.settings.get('DEFAULT_LATE_THRESHOLD_MINUTES', 15)
        partial = params.get('partial_threshold_minutes')
        if partial is None:
            partial = self.settings.get('DEFAULT_PARTIAL_THRESHOLD_MINUTES', 30)
        if late > partial:
            return self.reject(
                ReasonCode.INVALID_PAYLOAD,
                'lateThresholdMinutes cannot exceed partialThresholdMinutes.'
            )

        ends_at = scheduled_instant(
            params['scheduled_date'], params['end_time'], self.settings.get('SESSION_TIMEZONE')
        )
        if ends_at <= self.now():
            return self.reject(ReasonCode.INVALID_PAYLOAD, 'Cannot schedule a session that has already ended.')

        session = TrainingSession(
            training_id=training.id,
            trainer_id=trainer_id,
            title=params['title'],
            location=params.get('location'),
            scheduled_date=params['scheduled_date'],
            start_time=params['start_time'],
            end_time=params['end_time'],
            status=SessionStatus.SCHEDULED,
            late_threshold_minutes=late,
            partial_threshold_minutes=partial
        )
        db.session.add(session)
        db.session.commit()

        self.log(logging.INFO, 'session %s scheduled by user %s', session.id, caller.id)
        return OperationResult.ok(
            'Session scheduled.',
            status=SessionStatus.SCHEDULED.value,
            http_status=201,
            session=session.to_dict()
        )

    def assign_participants(self, session_id: int, user_ids: Iterable[int], caller: User) -> OperationResult:
        """Enroll users in a session; users already enrolled are left as they are."""
        denied = self.authorize_staff(caller, 'assign participants')
        if denied:
            return denied

        session, denied = self._open_session(session_id)
        if denied:
            return denied

        denied = self.authorize_session(caller, session)
        if denied:
            return denied

        user_ids = sorted(set(user_ids))
        found = {
            row.id for row in
            db.session.query(User.id).filter(User.id.in_(user_ids), User.is_active.is_(True))
        }
        unknown = [user_id for user_id in user_ids if user_id not in found]
        if unknown:
            return self.reject(
                ReasonCode.INVALID_PAYLOAD,
                f'Unknown or inactive users: {", ".join(str(u) for u in unknown)}.'
            )

        enrolled = set(session.participant_ids())
        added = [user_id for user_id in user_ids if user_id not in enrolled]
        if added:
            self._enroll(session.id, added)
        db.session.commit()

        self.log(logging.INFO, 'session %s: %d participants assigned', session.id, len(added))
        return OperationResult.ok(
            f'{len(added)} participants enrolled.',
            enrolledUserIds=added,
            alreadyEnrolled=[user_id for user_id in user_ids if user_id in enrolled]
        )

    def self_enroll(self, session_id: int, caller: User) -> OperationResult:
        """Trainee joins an upcoming or running session."""
        if caller.role != UserRole.TRAINEE:
            return self.reject(ReasonCode.FORBIDDEN, 'Only trainees can enroll themselves.')

        session, denied = self._open_session(session_id)
        if denied:
            return denied

        if session.is_enrolled(caller.id):
            return OperationResult.ok(f'Already enrolled in "{session.title}".', status='enrolled')

        self._enroll(session.id, [caller.id])
        db.session.commit()

        self.log(logging.INFO, 'user %s enrolled in session %s', caller.id, session.id)
        return OperationResult.ok(
            f'Enrolled in "{session.title}".',
            status='enrolled',
            http_status=201
        )

    def _resolve_trainer(self, trainer_id: Optional[int], caller: User):
        if not caller.is_admin():
            if trainer_id is not None and trainer_id != caller.id:
                return None, self.reject(ReasonCode.FORBIDDEN, 'Trainers can only schedule their own sessions.')
            return caller.id, None

        if trainer_id is None:
            return None, None
        trainer = db.session.get(User, trainer_id)
        if trainer is None or not trainer.is_active or trainer.role != UserRole.TRAINER:
            return None, self.reject(ReasonCode.INVALID_PAYLOAD, 'trainerId must name an active trainer.')
        return trainer.id, None

    def _open_session(self, session_id: int):
        session = db.session.get(TrainingSession, session_id)
        if session is None:
            return None, self.reject(ReasonCode.SESSION_NOT_FOUND, 'Session not found.')
        if session.status not in OPEN_SESSION_STATES:
            return None, self.reject(
                ReasonCode.SESSION_INACTIVE,
                f'Enrollment is closed for a {session.status.value} session.'
            )
        return session, None

    def _enroll(self, session_id: int, user_ids) -> None:
        now = self.now()
        stmt = conflict_insert(SessionParticipant.__table__).values([
            {
                'session_id': session_id,
                'user_id': user_id,
                'assigned_at': now,
                'created_at': now,
                'updated_at': now,
            }
            for user_id in user_ids
        ]).on_conflict_do_nothing(index_elements=['session_id', 'user_id'])
        db.session.execute(stmt)

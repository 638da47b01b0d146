"""Shared plumbing for the attendance services."""
import logging
import uuid
from datetime import datetime
from typing import Optional

from flask import current_app

from qrattend.models.attendance import AttendanceType
from qrattend.models.session import TrainingSession
from qrattend.models.user import User
from qrattend.services.classifier import classify_for_session
from qrattend.services.results import OperationResult, ReasonCode
from qrattend.utils.clock import get_clock

class AttendanceService:
    """Base for services that need a clock, settings and request-tagged logs."""

    def __init__(self, clock=None, debug_id: str = None):
        self.clock = clock or get_clock()
        self.debug_id = debug_id or uuid.uuid4().hex

    def now(self) -> datetime:
        return self.clock.now()

    @property
    def settings(self):
        return current_app.config

    def log(self, level: int, message: str, *args) -> None:
        current_app.logger.log(level, f'[{self.debug_id}] {message}', *args)

    def reject(self, reason: ReasonCode, message: str) -> OperationResult:
        """Expected, user-facing failure."""
        self.log(logging.INFO, '%s: %s', reason.value, message)
        return OperationResult.fail(reason, message)

    def classify(self, event_time: datetime, session: TrainingSession) -> AttendanceType:
        return classify_for_session(
            event_time,
            session,
            zone_name=self.settings.get('SESSION_TIMEZONE'),
            default_late=self.settings.get('DEFAULT_LATE_THRESHOLD_MINUTES'),
            default_partial=self.settings.get('DEFAULT_PARTIAL_THRESHOLD_MINUTES')
        )

    def authorize_staff(self, caller: Optional[User], action: str) -> Optional[OperationResult]:
        """Trainer or admin role required."""
        if caller is None or not caller.is_staff():
            return self.reject(ReasonCode.FORBIDDEN, f'Only trainers/admins can {action}.')
        return None

    def authorize_session(self, caller: User, session: TrainingSession) -> Optional[OperationResult]:
        """Admins manage every session; trainers only the ones assigned to them."""
        if not caller.is_admin() and session.trainer_id != caller.id:
            return self.reject(ReasonCode.FORBIDDEN, 'You are not the trainer assigned to this session.')
        return None

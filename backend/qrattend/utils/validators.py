"""Request payload validation for the attendance endpoints."""
from datetime import date, time
from typing import Any, Dict, Optional, Tuple

from qrattend.models.join_request import JoinRequestStatus
from qrattend.services.manual_override_service import MANUAL_STATUSES
from qrattend.services.join_request_service import ACTIONS
from qrattend.services.results import OperationResult, ReasonCode

# Accepted spellings for each field, first match wins
TOKEN_KEYS = ('token', 'qrToken', 'qr_token')
SESSION_KEYS = ('sessionId', 'session', 'session_id')
REQUEST_KEYS = ('requestId', 'request_id')
USER_KEYS = ('userId', 'user_id')
USER_LIST_KEYS = ('userIds', 'user_ids')
TRAINING_KEYS = ('trainingId', 'training_id')
TRAINER_KEYS = ('trainerId', 'trainer_id')
DATE_KEYS = ('scheduledDate', 'scheduled_date')
START_KEYS = ('startTime', 'start_time')
END_KEYS = ('endTime', 'end_time')
LATE_KEYS = ('lateThresholdMinutes', 'late_threshold_minutes')
PARTIAL_KEYS = ('partialThresholdMinutes', 'partial_threshold_minutes')

TITLE_LENGTH = (3, 255)

Parsed = Tuple[Optional[Dict[str, Any]], Optional[OperationResult]]

def invalid(message: str) -> OperationResult:
    return OperationResult.fail(ReasonCode.INVALID_PAYLOAD, message)

class Validator:
    """Validation helper class."""

    @staticmethod
    def first_present(data: Dict, keys) -> Any:
        """Value of the first key that is present and non-empty."""
        for key in keys:
            value = data.get(key)
            if value is not None and value != '':
                return value
        return None

    @staticmethod
    def parse_id(value) -> Optional[int]:
        """Positive integer id from an int or a digit string."""
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value if value > 0 else None
        if isinstance(value, str) and value.strip().isdigit():
            parsed = int(value.strip())
            return parsed if parsed > 0 else None
        return None

    @staticmethod
    def require_id(data: Dict, keys, label: str) -> Tuple[Optional[int], Optional[OperationResult]]:
        raw = Validator.first_present(data, keys)
        if raw is None:
            return None, invalid(f'{label} is required.')
        parsed = Validator.parse_id(raw)
        if parsed is None:
            return None, invalid(f'{label} must be a positive integer.')
        return parsed, None

    @staticmethod
    def mark_attendance(data: Dict) -> Parsed:
        token = Validator.first_present(data, TOKEN_KEYS)
        if not isinstance(token, str) or not token.strip():
            return None, invalid('token and sessionId are required.')
        if Validator.first_present(data, SESSION_KEYS) is None:
            return None, invalid('token and sessionId are required.')

        session_id, error = Validator.require_id(data, SESSION_KEYS, 'sessionId')
        if error:
            return None, error
        return {'token': token.strip(), 'session_id': session_id}, None

    @staticmethod
    def process_request(data: Dict) -> Parsed:
        request_id, error = Validator.require_id(data, REQUEST_KEYS, 'requestId')
        if error:
            return None, error

        action = data.get('action')
        if action not in ACTIONS:
            return None, invalid('action must be "approve" or "reject".')
        return {'request_id': request_id, 'action': action}, None

    @staticmethod
    def set_attendance(data: Dict) -> Parsed:
        session_id, error = Validator.require_id(data, SESSION_KEYS, 'sessionId')
        if error:
            return None, error

        user_id, error = Validator.require_id(data, USER_KEYS, 'userId')
        if error:
            return None, error

        status = data.get('status')
        if status not in MANUAL_STATUSES:
            return None, invalid(f'status must be one of: {", ".join(MANUAL_STATUSES)}.')
        return {'session_id': session_id, 'user_id': user_id, 'status': status}, None

    @staticmethod
    def join_request(data: Dict) -> Parsed:
        session_id, error = Validator.require_id(data, SESSION_KEYS, 'sessionId')
        if error:
            return None, error

        notes = data.get('notes')
        if notes is not None and not isinstance(notes, str):
            return None, invalid('notes must be a string.')
        return {'session_id': session_id, 'notes': notes}, None

    @staticmethod
    def request_listing(args) -> Parsed:
        session_id, error = Validator.require_id(args, SESSION_KEYS, 'sessionId')
        if error:
            return None, error

        raw_status = args.get('status') or JoinRequestStatus.PENDING.value
        try:
            status = JoinRequestStatus(raw_status)
        except ValueError:
            return None, invalid('status must be pending, approved or rejected.')
        return {'session_id': session_id, 'status': status}, None

    @staticmethod
    def title(data: Dict) -> Tuple[Optional[str], Optional[OperationResult]]:
        value = data.get('title')
        low, high = TITLE_LENGTH
        if not isinstance(value, str) or not low <= len(value.strip()) <= high:
            return None, invalid(f'title must be {low} to {high} characters.')
        return value.strip(), None

    @staticmethod
    def optional_text(data: Dict, key: str) -> Tuple[Optional[str], Optional[OperationResult]]:
        value = data.get(key)
        if value is None:
            return None, None
        if not isinstance(value, str):
            return None, invalid(f'{key} must be a string.')
        return value.strip() or None, None

    @staticmethod
    def parse_minutes(data: Dict, keys, label: str) -> Tuple[Optional[int], Optional[OperationResult]]:
        """Optional non-negative whole number of minutes."""
        raw = Validator.first_present(data, keys)
        if raw is None:
            return None, None
        if isinstance(raw, str) and raw.strip().isdigit():
            raw = int(raw.strip())
        if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
            return None, invalid(f'{label} must be a non-negative integer.')
        return raw, None

    @staticmethod
    def create_training(data: Dict) -> Parsed:
        title, error = Validator.title(data)
        if error:
            return None, error

        description, error = Validator.optional_text(data, 'description')
        if error:
            return None, error
        return {'title': title, 'description': description}, None

    @staticmethod
    def create_session(data: Dict) -> Parsed:
        training_id, error = Validator.require_id(data, TRAINING_KEYS, 'trainingId')
        if error:
            return None, error

        title, error = Validator.title(data)
        if error:
            return None, error

        try:
            scheduled_date = date.fromisoformat(Validator.first_present(data, DATE_KEYS))
        except (TypeError, ValueError):
            return None, invalid('scheduledDate must be a YYYY-MM-DD date.')

        try:
            start_time = time.fromisoformat(Validator.first_present(data, START_KEYS))
            end_time = time.fromisoformat(Validator.first_present(data, END_KEYS))
        except (TypeError, ValueError):
            return None, invalid('startTime and endTime must be HH:MM times.')
        if end_time <= start_time:
            return None, invalid('endTime must be after startTime.')

        location, error = Validator.optional_text(data, 'location')
        if error:
            return None, error

        trainer_id = None
        if Validator.first_present(data, TRAINER_KEYS) is not None:
            trainer_id, error = Validator.require_id(data, TRAINER_KEYS, 'trainerId')
            if error:
                return None, error

        late, error = Validator.parse_minutes(data, LATE_KEYS, 'lateThresholdMinutes')
        if error:
            return None, error
        partial, error = Validator.parse_minutes(data, PARTIAL_KEYS, 'partialThresholdMinutes')
        if error:
            return None, error

        return {
            'training_id': training_id,
            'title': title,
            'scheduled_date': scheduled_date,
            'start_time': start_time,
            'end_time': end_time,
            'location': location,
            'trainer_id': trainer_id,
            'late_threshold_minutes': late,
            'partial_threshold_minutes': partial,
        }, None

    @staticmethod
    def assign_participants(data: Dict) -> Parsed:
        raw = Validator.first_present(data, USER_LIST_KEYS)
        if not isinstance(raw, list) or not raw:
            return None, invalid('userIds must be a non-empty list.')

        user_ids = [Validator.parse_id(value) for value in raw]
        if None in user_ids:
            return None, invalid('userIds must contain positive integers.')
        return {'user_ids': user_ids}, None

# backend/qrattend/services/results.py
"""Tagged success/failure results returned by every attendance operation."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

class ReasonCode(Enum):
    """Stable machine-readable failure identifiers."""
    INVALID_PAYLOAD = 'INVALID_PAYLOAD'
    NOT_AUTHENTICATED = 'NOT_AUTHENTICATED'
    INVALID_SESSION = 'INVALID_SESSION'
    SESSION_NOT_FOUND = 'SESSION_NOT_FOUND'
    SESSION_INACTIVE = 'SESSION_INACTIVE'
    SESSION_NOT_ACTIVE = 'SESSION_NOT_ACTIVE'
    QR_EXPIRED = 'QR_EXPIRED'
    QR_TOKEN_MISMATCH = 'QR_TOKEN_MISMATCH'
    NOT_ENROLLED = 'NOT_ENROLLED'
    FORBIDDEN = 'FORBIDDEN'
    REQUEST_NOT_FOUND = 'REQUEST_NOT_FOUND'
    DUPLICATE_REQUEST = 'DUPLICATE_REQUEST'
    REQUEST_ALREADY_PROCESSED = 'REQUEST_ALREADY_PROCESSED'
    INVALID_TRANSITION = 'INVALID_TRANSITION'
    SERVER_CONFIG_ERROR = 'SERVER_CONFIG_ERROR'
    INTERNAL_ERROR = 'INTERNAL_ERROR'

HTTP_STATUS = {
    ReasonCode.INVALID_PAYLOAD: 400,
    ReasonCode.NOT_AUTHENTICATED: 401,
    ReasonCode.INVALID_SESSION: 401,
    ReasonCode.SESSION_NOT_FOUND: 404,
    ReasonCode.SESSION_INACTIVE: 400,
    ReasonCode.SESSION_NOT_ACTIVE: 400,
    ReasonCode.QR_EXPIRED: 400,
    ReasonCode.QR_TOKEN_MISMATCH: 400,
    ReasonCode.NOT_ENROLLED: 403,
    ReasonCode.FORBIDDEN: 403,
    ReasonCode.REQUEST_NOT_FOUND: 404,
    ReasonCode.DUPLICATE_REQUEST: 409,
    ReasonCode.REQUEST_ALREADY_PROCESSED: 409,
    ReasonCode.INVALID_TRANSITION: 409,
    ReasonCode.SERVER_CONFIG_ERROR: 500,
    ReasonCode.INTERNAL_ERROR: 500,
}

@dataclass
class OperationResult:
    """Outcome of a core operation.

    Successes carry the ledger status and, for credited attendance, the
    classification. Failures carry a reason code and a human message.
    """
    success: bool
    message: str
    reason: Optional[ReasonCode] = None
    status: Optional[str] = None
    attendance_type: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    http_status: int = 200

    @classmethod
    def ok(cls, message: str, status: str = None, attendance_type: str = None,
           http_status: int = 200, **data) -> 'OperationResult':
        return cls(
            success=True,
            message=message,
            status=status,
            attendance_type=attendance_type,
            data=data,
            http_status=http_status
        )

    @classmethod
    def fail(cls, reason: ReasonCode, message: str, http_status: int = None) -> 'OperationResult':
        return cls(
            success=False,
            message=message,
            reason=reason,
            http_status=http_status or HTTP_STATUS.get(reason, 400)
        )

    def to_dict(self, debug_id: str = None) -> Dict[str, Any]:
        """Wire shape: camelCase keys, None fields omitted."""
        body: Dict[str, Any] = {'success': self.success, 'message': self.message}
        if self.success:
            if self.status is not None:
                body['status'] = self.status
            if self.attendance_type is not None:
                body['attendanceType'] = self.attendance_type
            body.update(self.data)
        else:
            body['reason'] = self.reason.value
        if debug_id:
            body['debugId'] = debug_id
        return body

"""Attendance services."""
from .results import OperationResult, ReasonCode
from .auth_service import AuthService
from .scan_service import ScanService
from .join_request_service import JoinRequestService
from .manual_override_service import ManualOverrideService
from .lifecycle_service import LifecycleService
from .session_service import SessionService

__all__ = [
    'OperationResult', 'ReasonCode', 'AuthService', 'ScanService',
    'JoinRequestService', 'ManualOverrideService', 'LifecycleService',
    'SessionService'
]

# backend/qrattend/utils/decorators.py
"""Decorators for the attendance endpoints."""
import uuid
from functools import wraps
from typing import Callable, Optional

from flask import current_app, g, request

from qrattend import db
from qrattend.services.auth_service import AuthService
from qrattend.services.results import OperationResult, ReasonCode
from qrattend.utils.helpers import result_response

def server_config_error() -> Optional[OperationResult]:
    """SERVER_CONFIG_ERROR when a setting the handlers cannot run without is unset."""
    missing = [
        key for key in current_app.config.get('REQUIRED_SETTINGS', ())
        if not current_app.config.get(key)
    ]
    if missing:
        current_app.logger.error('[%s] missing settings: %s', g.debug_id, ', '.join(missing))
        return OperationResult.fail(ReasonCode.SERVER_CONFIG_ERROR, 'Server is misconfigured.')
    return None

def core_endpoint(name: str, parse: Callable = None, source: str = 'json'):
    """Run a view as an attendance operation.

    The wrapped view receives ``caller`` and ``params`` and returns an
    OperationResult. Checks run payload first, then server configuration,
    then the bearer credential. Any exception escaping the view is rolled
    back and reported as INTERNAL_ERROR.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            g.debug_id = g.get('debug_id') or uuid.uuid4().hex
            current_app.logger.info('[%s] %s %s', g.debug_id, request.method, name)

            try:
                result = _run(f, parse, source, *args, **kwargs)
            except Exception:
                db.session.rollback()
                current_app.logger.exception('[%s] %s failed', g.debug_id, name)
                result = OperationResult.fail(ReasonCode.INTERNAL_ERROR, 'An unexpected error occurred.')

            if not result.success:
                current_app.logger.info('[%s] %s -> %s', g.debug_id, name, result.reason.value)
            return result_response(result)
        return decorated_function
    return decorator

def _run(f, parse, source, *args, **kwargs) -> OperationResult:
    params = {}
    if parse is not None:
        data = request.args if source == 'args' else (request.get_json(silent=True) or {})
        if not hasattr(data, 'get'):
            data = {}
        params, error = parse(data)
        if error:
            return error

    error = server_config_error()
    if error:
        return error

    caller, error = AuthService.resolve_caller()
    if error:
        return error

    return f(caller, params, *args, **kwargs)

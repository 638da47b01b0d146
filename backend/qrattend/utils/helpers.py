"""Helper functions for the application."""
from flask import g, jsonify, request
from typing import Any

def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    return jsonify({
        'success': False,
        'error': True,
        'message': str(error),
        'status_code': status_code
    }), status_code

def success_response(data: Any = None, message: str = "Success"):
    """Return consistent success response."""
    response = {
        'success': True,
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response)

def error_response(message: str, status_code: int = 400):
    """Return consistent error response."""
    return jsonify({
        'success': False,
        'error': True,
        'message': message,
        'status_code': status_code
    }), status_code

def result_response(result, debug_id: str = None):
    """Serialize an OperationResult with its HTTP status and the request's debug id."""
    if debug_id is None:
        debug_id = g.get('debug_id')
    return jsonify(result.to_dict(debug_id=debug_id)), result.http_status

def client_ip() -> str:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr

# backend/qrattend/api/functions.py
"""Attendance handlers: QR scan, request processing, manual override."""
from flask import Blueprint, g, request

from qrattend import limiter
from qrattend.services.join_request_service import JoinRequestService
from qrattend.services.manual_override_service import ManualOverrideService
from qrattend.services.scan_service import ScanService
from qrattend.utils.decorators import core_endpoint
from qrattend.utils.helpers import client_ip
from qrattend.utils.validators import Validator

functions_bp = Blueprint("functions", __name__)

@functions_bp.route("/mark-attendance", methods=["POST"])
@limiter.limit("30 per minute")
@core_endpoint("mark-attendance", parse=Validator.mark_attendance)
def mark_attendance(caller, params):
    """Trainee scans the session QR code."""
    return ScanService(debug_id=g.debug_id).mark_attendance(
        params['token'],
        params['session_id'],
        caller,
        ip_address=client_ip(),
        user_agent=request.headers.get('User-Agent')
    )

@functions_bp.route("/process-attendance-request", methods=["POST"])
@core_endpoint("process-attendance-request", parse=Validator.process_request)
def process_attendance_request(caller, params):
    """Trainer/admin approves or rejects a join request."""
    return JoinRequestService(debug_id=g.debug_id).process(
        params['request_id'], params['action'], caller
    )

@functions_bp.route("/set-attendance", methods=["POST"])
@core_endpoint("set-attendance", parse=Validator.set_attendance)
def set_attendance(caller, params):
    """Trainer/admin overrides a participant's attendance."""
    return ManualOverrideService(debug_id=g.debug_id).set_attendance(
        params['session_id'], params['user_id'], params['status'], caller
    )

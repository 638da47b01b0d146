# backend/qrattend/api/sessions.py
"""Session scheduling, enrollment and lifecycle API."""
from flask import Blueprint, g

from qrattend import limiter
from qrattend.services.lifecycle_service import LifecycleService
from qrattend.services.session_service import SessionService
from qrattend.utils.decorators import core_endpoint
from qrattend.utils.validators import Validator

sessions_bp = Blueprint("sessions", __name__)

@sessions_bp.route("", methods=["POST"])
@limiter.limit("30 per hour")
@core_endpoint("create-session", parse=Validator.create_session)
def create_session(caller, params):
    """Schedule a session (trainers and admins)."""
    return SessionService(debug_id=g.debug_id).create_session(params, caller)

@sessions_bp.route("/<int:session_id>/participants", methods=["POST"])
@core_endpoint("assign-participants", parse=Validator.assign_participants)
def assign_participants(caller, params, session_id):
    return SessionService(debug_id=g.debug_id).assign_participants(
        session_id, params['user_ids'], caller
    )

@sessions_bp.route("/<int:session_id>/enroll", methods=["POST"])
@core_endpoint("self-enroll")
def self_enroll(caller, params, session_id):
    """Trainee enrolls in an open session."""
    return SessionService(debug_id=g.debug_id).self_enroll(session_id, caller)

@sessions_bp.route("/<int:session_id>/start", methods=["POST"])
@core_endpoint("start-session")
def start_session(caller, params, session_id):
    return LifecycleService(debug_id=g.debug_id).start(session_id, caller)

@sessions_bp.route("/<int:session_id>/refresh-qr", methods=["POST"])
@core_endpoint("refresh-qr")
def refresh_qr(caller, params, session_id):
    return LifecycleService(debug_id=g.debug_id).refresh_qr(session_id, caller)

@sessions_bp.route("/<int:session_id>/complete", methods=["POST"])
@core_endpoint("complete-session")
def complete_session(caller, params, session_id):
    return LifecycleService(debug_id=g.debug_id).complete(session_id, caller)

@sessions_bp.route("/<int:session_id>/cancel", methods=["POST"])
@core_endpoint("cancel-session")
def cancel_session(caller, params, session_id):
    return LifecycleService(debug_id=g.debug_id).cancel(session_id, caller)

@sessions_bp.route("/<int:session_id>/qr", methods=["GET"])
@core_endpoint("session-qr")
def session_qr(caller, params, session_id):
    """Scan URL and QR image for the trainer's screen."""
    return LifecycleService(debug_id=g.debug_id).qr_payload(session_id, caller)

@sessions_bp.route("/auto-complete", methods=["POST"])
@core_endpoint("auto-complete-sessions")
def auto_complete_sessions(caller, params):
    """Close every active session past its scheduled end."""
    return LifecycleService(debug_id=g.debug_id).auto_complete_expired(caller)

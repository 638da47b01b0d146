# backend/qrattend/api/join_requests.py
"""Join request API for trainees and the trainer approval queue."""
from flask import Blueprint, g

from qrattend.services.join_request_service import JoinRequestService
from qrattend.utils.decorators import core_endpoint
from qrattend.utils.validators import Validator

join_requests_bp = Blueprint("join_requests", __name__)

@join_requests_bp.route("", methods=["POST"])
@core_endpoint("create-join-request", parse=Validator.join_request)
def create_join_request(caller, params):
    return JoinRequestService(debug_id=g.debug_id).request_join(
        params['session_id'], caller, notes=params['notes']
    )

@join_requests_bp.route("/<int:request_id>", methods=["DELETE"])
@core_endpoint("withdraw-join-request")
def withdraw_join_request(caller, params, request_id):
    return JoinRequestService(debug_id=g.debug_id).withdraw(request_id, caller)

@join_requests_bp.route("", methods=["GET"])
@core_endpoint("list-join-requests", parse=Validator.request_listing, source='args')
def list_join_requests(caller, params):
    """Requests for one session, pending unless ?status= says otherwise."""
    return JoinRequestService(debug_id=g.debug_id).list_for_session(
        params['session_id'], caller, status=params['status']
    )

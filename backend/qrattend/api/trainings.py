# backend/qrattend/api/trainings.py
"""Training programme API."""
from flask import Blueprint, g

from qrattend.services.session_service import SessionService
from qrattend.utils.decorators import core_endpoint
from qrattend.utils.validators import Validator

trainings_bp = Blueprint("trainings", __name__)

@trainings_bp.route("", methods=["POST"])
@core_endpoint("create-training", parse=Validator.create_training)
def create_training(caller, params):
    return SessionService(debug_id=g.debug_id).create_training(
        params['title'], caller, description=params['description']
    )

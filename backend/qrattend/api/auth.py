# backend/qrattend/api/auth.py
"""Authentication API."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity
from qrattend import db, limiter
from qrattend.models.user import User
from qrattend.services.auth_service import AuthService
from qrattend.utils.helpers import success_response, error_response

auth_bp = Blueprint("auth", __name__)

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    """Email/password login for every role."""
    data = request.get_json(silent=True)

    if not data:
        return error_response("Request body must be JSON", 400)

    email = str(data.get("email", "")).strip()
    password = data.get("password", "")

    if not email or not password:
        return error_response("Email and password are required", 400)

    result, error = AuthService.login(email, password)

    if error:
        return error_response(error, 401)

    return success_response(
        data=result,
        message="Login successful"
    )

@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    """Current user profile."""
    user = db.session.get(User, int(get_jwt_identity()))

    if not user or not user.is_active:
        return error_response("User not found", 404)

    return success_response(data=user.to_dict())

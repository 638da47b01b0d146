"""Authentication service: login and bearer-token caller resolution."""
import re
from typing import Optional, Tuple

from flask import request
from flask_jwt_extended import create_access_token, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from qrattend import db
from qrattend.models.user import User
from qrattend.services.results import OperationResult, ReasonCode
from qrattend.utils.clock import utcnow

class AuthService:
    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format."""
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return re.match(pattern, email) is not None

    @staticmethod
    def login(email: str, password: str) -> Tuple[Optional[dict], Optional[str]]:
        """Authenticate user and return an access token."""
        if not email or not password:
            return None, "Email and password are required"

        if not AuthService.validate_email(email):
            return None, "Invalid email format"

        user = User.query.filter_by(email=email.lower().strip()).first()

        if not user or not user.check_password(password):
            return None, "Invalid email or password"

        if not user.is_active:
            return None, "Account is deactivated"

        user.last_login = utcnow()
        user.save()

        # JWT subjects must be strings
        access_token = create_access_token(identity=str(user.id))

        return {
            "access_token": access_token,
            "user": user.to_dict()
        }, None

    @staticmethod
    def resolve_caller() -> Tuple[Optional[User], Optional[OperationResult]]:
        """Map the request's bearer credential to an active user.

        A missing header is NOT_AUTHENTICATED; anything wrong with a header
        that is present (bad signature, expiry, unknown or deactivated user)
        is INVALID_SESSION.
        """
        if not request.headers.get('Authorization'):
            return None, OperationResult.fail(ReasonCode.NOT_AUTHENTICATED, 'Please log in.')

        try:
            verify_jwt_in_request()
            user_id = int(get_jwt_identity())
        except (JWTExtendedException, PyJWTError, TypeError, ValueError):
            return None, OperationResult.fail(ReasonCode.INVALID_SESSION, 'Authentication failed.')

        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            return None, OperationResult.fail(ReasonCode.INVALID_SESSION, 'Authentication failed.')

        return user, None

"""QR Training Attendance - Application Factory."""
import logging
import os
import uuid
from flask import Flask, current_app, g, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import redis

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Make sure every model is mapped
    setup_database(app)

    # Add CLI commands
    register_commands(app)

    @app.before_request
    def assign_debug_id():
        g.debug_id = uuid.uuid4().hex

    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'QR Training Attendance',
            'version': '1.0.0',
            'rate_limit_storage': rate_limit_storage_status()
        })

    return app

def rate_limit_storage_status() -> str:
    """Reachability of the Redis instance backing the rate limiter."""
    redis_url = current_app.config.get('REDIS_URL')
    if not redis_url:
        return 'memory'
    try:
        redis.Redis.from_url(redis_url, socket_connect_timeout=1).ping()
        return 'redis'
    except redis.RedisError as e:
        current_app.logger.warning(f'Redis unreachable: {e}')
        return 'unreachable'

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from qrattend.api.auth import auth_bp
    from qrattend.api.functions import functions_bp
    from qrattend.api.join_requests import join_requests_bp
    from qrattend.api.sessions import sessions_bp
    from qrattend.api.trainings import trainings_bp

    # Auth
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    # Attendance handlers
    app.register_blueprint(functions_bp, url_prefix='/api/functions')
    app.register_blueprint(join_requests_bp, url_prefix='/api/join-requests')

    # Trainings, sessions and enrollment
    app.register_blueprint(trainings_bp, url_prefix='/api/trainings')
    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from qrattend.services.results import OperationResult, ReasonCode
    from qrattend.utils.helpers import handle_error, result_response
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return handle_error(error, 500)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e.description, e.code)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return result_response(OperationResult.fail(
            ReasonCode.INVALID_SESSION, 'Token has expired.'
        ))

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return result_response(OperationResult.fail(
            ReasonCode.INVALID_SESSION, 'Authentication failed.'
        ))

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return result_response(OperationResult.fail(
            ReasonCode.NOT_AUTHENTICATED, 'Please log in.'
        ))

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)

        app.logger.info('QR Training Attendance startup')

def setup_database(app: Flask) -> None:
    """Import all models so metadata and migrations see every table."""
    with app.app_context():
        from qrattend.models import (
            User, Training, TrainingSession, SessionParticipant,
            JoinRequest, Attendance
        )

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    from qrattend.cli import register
    register(app)

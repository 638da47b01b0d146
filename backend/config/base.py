"""Settings shared by every environment."""
import os
from datetime import timedelta

class BaseConfig:
    """Base configuration."""
    
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    
    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=8)
    JWT_ALGORITHM = 'HS256'
    
    # CORS
    CORS_ORIGINS = ["*"]
    
    # Rate Limiting
    REDIS_URL = os.getenv('REDIS_URL')
    RATELIMIT_STORAGE_URI = REDIS_URL or 'memory://'
    RATELIMIT_DEFAULT = "500 per hour"
    RATELIMIT_ENABLED = True
    
    # QR codes
    QR_VALIDITY_HOURS = 4
    QR_SCAN_BASE_URL = os.getenv('QR_SCAN_BASE_URL') or 'http://localhost:8080'
    
    # Attendance classification
    DEFAULT_LATE_THRESHOLD_MINUTES = 15
    DEFAULT_PARTIAL_THRESHOLD_MINUTES = 30
    # scheduled_date + start_time carry no zone of their own
    SESSION_TIMEZONE = os.getenv('SESSION_TIMEZONE') or 'UTC'
    
    # Settings a handler refuses to run without
    REQUIRED_SETTINGS = ('SQLALCHEMY_DATABASE_URI', 'JWT_SECRET_KEY')
    
    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = 'logs/app.log'

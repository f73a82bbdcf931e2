import os

class Config:
    # The secret key is used by Flask to sign session cookies. Keep it secret in production.
    # In production (Docker), SECRET_KEY must be set as an environment variable.
    # Locally, a dev-only fallback is used so you don't need a .env file just to run the app.
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY and os.environ.get('FLASK_ENV') != 'development':
        import warnings
        warnings.warn('SECRET_KEY not set, using insecure default. Set SECRET_KEY env var in production!')
        SECRET_KEY = 'dev-secret-key-not-for-production'
    elif not SECRET_KEY:
        SECRET_KEY = 'dev-secret-key-not-for-production'

    # In Docker, DATABASE_URL env var points to the database server or mounted volume.
    # Locally, falls back to the instance/ folder next to this file.
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(os.path.abspath(os.path.dirname(__file__)), 'instance', 'taverna.db')

    # This disables a noisy tracking feature we don't need
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie security: the API is cookie-authenticated
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = 'Lax'

    # Maximum request body size (1 MB). JSON bodies are small
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # Rate limiter storage. memory:// is fine for a single server;
    # point this at redis:// when running more than one worker.
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')

    # Chat pagination: page size requested by clients is clamped to CHAT_PAGE_MAX
    CHAT_PAGE_SIZE = 50
    CHAT_PAGE_MAX = 100

    # Combat log reads
    COMBAT_LOG_LIMIT = 100
    COMBAT_LOG_MAX = 500


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RATELIMIT_ENABLED = False
    LOG_LEVEL = 'WARNING'

"""
SignalDesk - Configuration
Environment-based configuration for different deployment stages
"""
import os


def _normalize_db_url(db_url: str) -> str:
    """Render/Heroku hand out postgres:// but SQLAlchemy needs postgresql+psycopg://"""
    if db_url.startswith('postgres://'):
        return db_url.replace('postgres://', 'postgresql+psycopg://', 1)
    if db_url.startswith('postgresql://'):
        return db_url.replace('postgresql://', 'postgresql+psycopg://', 1)
    return db_url


class BaseConfig:
    """Base configuration"""

    # Flask - Secret key (required in production)
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

    _is_production = os.environ.get('RENDER') or os.environ.get('FLASK_ENV') == 'production'
    if SECRET_KEY == 'dev-secret-key-change-in-production' and _is_production:
        import warnings
        warnings.warn("SECRET_KEY is using default dev value in production! Set SECRET_KEY env var.")

    # CORS
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    # Database - PostgreSQL for production, SQLite for local dev
    DATABASE_URL = os.environ.get('DATABASE_URL', '')

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        db_url = os.environ.get('DATABASE_URL', '')
        if db_url:
            return _normalize_db_url(db_url)
        return 'sqlite:///signaldesk.db'

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Sanity CMS
    SANITY_PROJECT_ID = os.environ.get('SANITY_PROJECT_ID', '')
    SANITY_DATASET = os.environ.get('SANITY_DATASET', 'production')
    SANITY_API_VERSION = os.environ.get('SANITY_API_VERSION', '2023-05-03')
    SANITY_API_TOKEN = os.environ.get('SANITY_API_TOKEN', '')
    SANITY_USE_CDN = os.environ.get('SANITY_USE_CDN', 'true').lower() == 'true'

    # Clerk (auth provider)
    CLERK_SECRET_KEY = os.environ.get('CLERK_SECRET_KEY', '')
    CLERK_API_URL = os.environ.get('CLERK_API_URL', 'https://api.clerk.com/v1')
    CLERK_JWT_KEY = os.environ.get('CLERK_JWT_KEY', '')  # PEM public key for session tokens
    CLERK_JWT_ALGORITHMS = os.environ.get('CLERK_JWT_ALGORITHMS', 'RS256').split(',')
    CLERK_WEBHOOK_SECRET = os.environ.get('CLERK_WEBHOOK_SECRET', '')

    # BoomFi (payment provider)
    BOOMFI_API_KEY = os.environ.get('BOOMFI_API_KEY', '')
    BOOMFI_API_URL = os.environ.get('BOOMFI_API_URL', 'https://api.boomfi.xyz')
    BOOMFI_WEBHOOK_SECRET = os.environ.get('BOOMFI_WEBHOOK_SECRET', '')
    PAYMENT_AMOUNT_USD = float(os.environ.get('PAYMENT_AMOUNT_USD', '49'))

    # CoinGecko
    COINGECKO_API_KEY = os.environ.get('COINGECKO_API_KEY', '')
    COINGECKO_API_URL = os.environ.get('COINGECKO_API_URL', 'https://api.coingecko.com/api/v3')

    # Cache - Redis when configured, in-process otherwise
    REDIS_URL = os.environ.get('REDIS_URL', '')
    CACHE_MAX_ENTRIES = int(os.environ.get('CACHE_MAX_ENTRIES', '500'))

    # Rate limiting (read by Flask-Limiter)
    RATELIMIT_ENABLED = os.environ.get('RATE_LIMIT_ENABLED', 'true').lower() == 'true'
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = 'memory://'


class DevelopmentConfig(BaseConfig):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(BaseConfig):
    """Production configuration"""
    DEBUG = False
    TESTING = False
    SANITY_USE_CDN = False

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        return _normalize_db_url(os.environ.get('DATABASE_URL', ''))


class TestingConfig(BaseConfig):
    """Testing configuration"""
    DEBUG = True
    TESTING = True

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """Use TEST_DATABASE_URL if set, otherwise in-memory SQLite"""
        db_url = os.environ.get('TEST_DATABASE_URL', '')
        if db_url:
            return _normalize_db_url(db_url)
        return 'sqlite:///:memory:'

    # Provider credentials for tests; HTTP calls are mocked
    SANITY_PROJECT_ID = 'testproj'
    SANITY_DATASET = 'test'
    SANITY_API_TOKEN = 'test-sanity-token'
    SANITY_USE_CDN = False
    CLERK_SECRET_KEY = 'sk_test_clerk'
    CLERK_JWT_KEY = 'test-session-signing-key-0123456789abcdef'
    CLERK_JWT_ALGORITHMS = ['HS256']
    CLERK_WEBHOOK_SECRET = 'whsec_dGVzdC1jbGVyay13ZWJob29rLXNlY3JldA=='
    BOOMFI_API_KEY = 'test-boomfi-key'
    BOOMFI_WEBHOOK_SECRET = 'test-boomfi-webhook-secret'
    COINGECKO_API_KEY = ''
    REDIS_URL = ''


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}

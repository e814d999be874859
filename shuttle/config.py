import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _normalize_database_url(raw_url):
    if not raw_url:
        return raw_url
    if raw_url.startswith('postgres://'):
        return raw_url.replace('postgres://', 'postgresql://', 1)
    return raw_url


class BaseConfig:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-prod')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'threading')
    # Court rotation
    DEFAULT_COURT_COUNT = _env_int('DEFAULT_COURT_COUNT', 2)
    AUTO_ASSIGN_ENABLED = _env_bool('AUTO_ASSIGN_ENABLED', False)
    AUTO_ASSIGN_INTERVAL_SECONDS = _env_float('AUTO_ASSIGN_INTERVAL_SECONDS', 10.0)
    AUTO_BROADCAST_ENABLED = _env_bool('AUTO_BROADCAST_ENABLED', True)
    SCHEDULER_SEED = os.environ.get('SCHEDULER_SEED') or None
    # Optional remote pairing suggestions
    SUGGESTION_API_URL = os.environ.get('SUGGESTION_API_URL', '')
    SUGGESTION_API_KEY = os.environ.get('SUGGESTION_API_KEY', '')
    SUGGESTION_TIMEOUT_SECONDS = _env_float('SUGGESTION_TIMEOUT_SECONDS', 20.0)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(
        os.environ.get(
            'DATABASE_URL',
            'sqlite:///' + os.path.join(basedir, '..', 'shuttle_dev.db')
        )
    )


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    AUTO_ASSIGN_ENABLED = False
    SCHEDULER_SEED = '1234'
    SUGGESTION_API_URL = ''
    SUGGESTION_API_KEY = ''


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get('DATABASE_URL'))


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}

import logging
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
from flask_cors import CORS
from shuttle.config import config

db = SQLAlchemy()
socketio = SocketIO()

REGISTRY_EXTENSION = 'shuttle_sessions'


def _parse_allowed_origins(raw_origins):
    if not raw_origins:
        return '*'

    if isinstance(raw_origins, (list, tuple, set)):
        cleaned = [origin for origin in raw_origins if origin]
        return cleaned or '*'

    raw_text = str(raw_origins).strip()
    if not raw_text or raw_text == '*':
        return '*'

    origins = [origin.strip() for origin in raw_text.split(',') if origin.strip()]
    return origins or '*'


def _configure_logging(app):
    level = logging.DEBUG if app.debug else logging.INFO
    logging.getLogger('shuttle').setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        )


def get_registry(app):
    return app.extensions[REGISTRY_EXTENSION]


def create_app(config_name='development'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    _configure_logging(app)

    allowed_origins = _parse_allowed_origins(app.config.get('CORS_ALLOWED_ORIGINS', '*'))
    if str(config_name).strip().lower() == 'production':
        secret_key = str(app.config.get('SECRET_KEY') or '').strip()
        if not secret_key or secret_key == 'dev-secret-key-change-in-prod':
            raise RuntimeError('SECRET_KEY must be set to a non-default value in production')
        if allowed_origins == '*':
            raise RuntimeError('CORS_ALLOWED_ORIGINS must be explicitly set in production')

    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'threading'),
    )
    CORS(app, resources={r'/api/*': {'origins': allowed_origins}})

    from shuttle.routes.session import session_bp
    app.register_blueprint(session_bp, url_prefix='/api/sessions')

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'ok'})

    with app.app_context():
        from shuttle import models  # noqa: F401
        db.create_all()

    from shuttle.services.registry import SessionRegistry
    app.extensions[REGISTRY_EXTENSION] = SessionRegistry(app)

    return app

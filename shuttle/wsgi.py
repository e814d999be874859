"""WSGI entrypoint used by Gunicorn."""
import atexit
import os

from shuttle.app import create_app, get_registry

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)

atexit.register(get_registry(app).shutdown)

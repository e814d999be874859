#!/usr/bin/env python3
"""Entry point for the Shuttle court rotation server."""
import os
from shuttle.app import create_app, socketio

config_name = os.environ.get('FLASK_ENV', 'development')
app = create_app(config_name)

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5001))
    app.logger.info('Shuttle starting on http://localhost:%s', port)
    socketio.run(
        app, host='0.0.0.0', port=port,
        debug=(config_name == 'development'),
        allow_unsafe_werkzeug=True,
    )

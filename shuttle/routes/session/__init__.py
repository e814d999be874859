"""Court rotation session API: blueprint registration."""
from flask import Blueprint, jsonify
from shuttle.engine.errors import EngineError

session_bp = Blueprint('session', __name__)


@session_bp.errorhandler(EngineError)
def _engine_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


# Route modules register their routes by importing session_bp.
# These imports MUST come after session_bp is defined.
from shuttle.routes.session import state, players, courts, queue, schedule  # noqa: E402, F401

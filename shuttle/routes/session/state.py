"""Session state read and reset routes."""
from flask import jsonify
from shuttle.routes.session import session_bp
from shuttle.routes.session.helpers import (
    _bad_key, _engine_for, _invalid_payload, _json_payload, _parse_int,
)


@session_bp.route('/<session_key>', methods=['GET'])
def get_session(session_key):
    """Full session state plus the derived playing/queued/busy sets."""
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    return jsonify({'session': engine.snapshot()})


@session_bp.route('/<session_key>/reset', methods=['POST'])
def reset_session(session_key):
    """End the current session: clear roster, queue and history, restore default courts."""
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    court_count = _parse_int(data.get('court_count'))
    if court_count is not None and court_count < 1:
        return jsonify({'error': 'Court count must be at least 1'}), 400
    engine.reset(court_count)
    return jsonify({'session': engine.snapshot()})

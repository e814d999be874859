"""Round scheduling and auto-assign routes."""
from flask import jsonify
from shuttle.engine.generator import suggested_round_count
from shuttle.routes.session import session_bp
from shuttle.routes.session.helpers import (
    _bad_key, _coerce_bool, _engine_for, _invalid_payload, _json_payload, _parse_int,
)
from shuttle.services.session_engine import SCHEDULE_MODES

_MAX_ROUNDS_PER_REQUEST = 50


@session_bp.route('/<session_key>/schedule', methods=['POST'])
def schedule_rounds(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    rounds = _parse_int(data.get('rounds'), 1)
    if rounds is None or rounds < 1:
        return jsonify({'error': 'Rounds must be a positive integer'}), 400
    if rounds > _MAX_ROUNDS_PER_REQUEST:
        return jsonify({'error': f'At most {_MAX_ROUNDS_PER_REQUEST} rounds per request'}), 400
    mode = str(data.get('mode', 'normal')).strip().lower()
    if mode not in SCHEDULE_MODES:
        return jsonify({'error': 'Invalid scheduling mode'}), 400

    result = engine.schedule(rounds, mode)
    return jsonify({
        'rounds': result['rounds'],
        'mode': result['mode'],
        'fallback_reason': result['fallback_reason'],
        'queue': engine.state.queue,
    }), 201


@session_bp.route('/<session_key>/schedule/suggested', methods=['GET'])
def get_suggested_rounds(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    return jsonify({'rounds': suggested_round_count(engine.state)})


@session_bp.route('/<session_key>/auto-assign', methods=['POST'])
def auto_assign_all(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    result = engine.auto_assign_all()
    payload = result.to_dict()
    if not result.filled:
        payload['message'] = 'No queued round could be assigned to the idle courts'
    return jsonify(payload)


@session_bp.route('/<session_key>/auto-assign/settings', methods=['PUT'])
def update_auto_assign(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    enabled = _coerce_bool(data['enabled']) if 'enabled' in data else None
    interval = None
    if 'interval_seconds' in data:
        try:
            interval = float(data['interval_seconds'])
        except (TypeError, ValueError):
            return jsonify({'error': 'interval_seconds must be a number'}), 400
        if interval <= 0:
            return jsonify({'error': 'interval_seconds must be positive'}), 400
    settings = engine.configure_auto_assign(enabled=enabled, interval=interval)
    return jsonify({'auto_assign': settings})

"""Session API shared helpers."""
from flask import current_app, jsonify, request
from shuttle.app import get_registry
from shuttle.services.registry import is_valid_session_key


def _coerce_bool(raw_value):
    if isinstance(raw_value, bool):
        return raw_value
    if isinstance(raw_value, (int, float)):
        return raw_value == 1
    if raw_value is None:
        return False
    return str(raw_value).strip().lower() in {'1', 'true', 'yes', 'on'}


def _parse_int(raw_value, default=None):
    if raw_value is None or raw_value == '':
        return default
    try:
        return int(raw_value)
    except (TypeError, ValueError):
        return default


def _json_payload():
    """Request JSON body as a dict, or None when the body is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        return None
    return data


def _invalid_payload():
    return jsonify({'error': 'Invalid JSON payload'}), 400


def _bad_key():
    return jsonify({'error': 'Invalid session key'}), 400


def _engine_for(session_key):
    if not is_valid_session_key(session_key):
        return None
    return get_registry(current_app).get(session_key)

"""Pending-round queue routes."""
from flask import jsonify, request
from shuttle.engine.queue_ops import find_other_entries
from shuttle.routes.session import session_bp
from shuttle.routes.session.helpers import (
    _bad_key, _engine_for, _invalid_payload, _json_payload, _parse_int,
)


@session_bp.route('/<session_key>/queue', methods=['POST'])
def append_entry(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    entry = engine.append_entry(data.get('entry'))
    return jsonify({'entry': entry, 'queue': engine.state.queue}), 201


@session_bp.route('/<session_key>/queue/blank', methods=['POST'])
def append_blank(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    engine.append_blank()
    return jsonify({'queue': engine.state.queue}), 201


@session_bp.route('/<session_key>/queue/<int:index>', methods=['DELETE'])
def remove_entry(session_key, index):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    removed = engine.remove_entry(index)
    return jsonify({'removed': removed, 'queue': engine.state.queue})


@session_bp.route('/<session_key>/queue/<int:index>/move', methods=['POST'])
def move_entry(session_key, index):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    moved = engine.move_entry(index, data.get('direction', ''))
    return jsonify({'moved': moved, 'queue': engine.state.queue})


@session_bp.route('/<session_key>/queue/<int:index>/swap', methods=['POST'])
def swap_slot(session_key, index):
    """Replace one slot of a queued round.

    Pass ``target_entry`` (from the duplicates lookup) to trade places with
    the incoming player's other round instead of overwriting.
    """
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    new_player_id = str(data.get('new_player_id') or '').strip()
    if not new_player_id:
        return jsonify({'error': 'new_player_id is required'}), 400
    outcome = engine.swap_slot(
        index,
        data.get('old_player_id') or None,
        new_player_id,
        slot_index=_parse_int(data.get('slot_index')),
        target_entry=_parse_int(data.get('target_entry')),
    )
    return jsonify({'outcome': outcome, 'queue': engine.state.queue})


@session_bp.route('/<session_key>/queue/<int:index>/duplicates', methods=['GET'])
def get_duplicates(session_key, index):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    player_id = str(request.args.get('player_id') or '').strip()
    if not player_id:
        return jsonify({'error': 'player_id is required'}), 400
    return jsonify({'queue_indices': find_other_entries(engine.state, index, player_id)})


@session_bp.route('/<session_key>/queue/analysis', methods=['GET'])
def get_queue_analysis(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    return jsonify({'analysis': engine.analyze_queue()})

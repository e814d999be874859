"""Roster routes."""
from flask import jsonify
from shuttle.routes.session import session_bp
from shuttle.routes.session.helpers import (
    _bad_key, _engine_for, _invalid_payload, _json_payload,
)
from shuttle.engine.queue_ops import queued_entries_for_player

_MAX_BULK_PLAYERS = 200


@session_bp.route('/<session_key>/players', methods=['POST'])
def add_player(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    player = engine.add_player(
        data.get('name'),
        gender=data.get('gender', 'male'),
        level=data.get('level', 7),
        target_games=data.get('target_games', 6),
    )
    return jsonify({'player': player.to_dict()}), 201


@session_bp.route('/<session_key>/players/bulk', methods=['POST'])
def bulk_add_players(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    rows = data.get('players')
    if not isinstance(rows, list) or not rows:
        return jsonify({'error': 'Players must be a non-empty list'}), 400
    if len(rows) > _MAX_BULK_PLAYERS:
        return jsonify({'error': f'At most {_MAX_BULK_PLAYERS} players per import'}), 400
    if not all(isinstance(row, dict) for row in rows):
        return jsonify({'error': 'Each player must be an object'}), 400
    players = engine.bulk_add_players(rows)
    return jsonify({'players': [p.to_dict() for p in players]}), 201


@session_bp.route('/<session_key>/players/<player_id>', methods=['PATCH'])
def update_player(session_key, player_id):
    """Edit a player's level and/or target game count."""
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    level = data.get('level')
    target_games = data.get('target_games')
    if level is None and target_games is None:
        return jsonify({'error': 'Nothing to update'}), 400

    player = engine.update_player(player_id, level=level, target_games=target_games)
    return jsonify({'player': player.to_dict()})


@session_bp.route('/<session_key>/players/<player_id>/pause', methods=['POST'])
def toggle_pause(session_key, player_id):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    player = engine.toggle_pause(player_id)
    return jsonify({'player': player.to_dict()})


@session_bp.route('/<session_key>/players/<player_id>', methods=['DELETE'])
def delete_player(session_key, player_id):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    engine.delete_player(player_id)
    return jsonify({'message': 'Player removed'})


@session_bp.route('/<session_key>/players/<player_id>/stats', methods=['GET'])
def get_player_stats(session_key, player_id):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    return jsonify({'stats': engine.player_stats(player_id)})


@session_bp.route('/<session_key>/players/<player_id>/entries', methods=['GET'])
def get_player_entries(session_key, player_id):
    """Queued rounds holding this player (checked before swapping them onto a court)."""
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    return jsonify({'queue_indices': queued_entries_for_player(engine.state, player_id)})

"""Court management, dispatch and conflict-resolution routes."""
from flask import jsonify, request
from shuttle.engine.conflicts import Resolution
from shuttle.engine.errors import ResolutionImpossibleError
from shuttle.routes.session import session_bp
from shuttle.routes.session.helpers import (
    _bad_key, _engine_for, _invalid_payload, _json_payload, _parse_int,
)


@session_bp.route('/<session_key>/courts', methods=['POST'])
def add_court(session_key):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    court = engine.add_court(data.get('name'))
    return jsonify({'court': court.to_dict()}), 201


@session_bp.route('/<session_key>/courts/<court_id>', methods=['PATCH'])
def rename_court(session_key, court_id):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    court = engine.rename_court(court_id, data.get('name'))
    return jsonify({'court': court.to_dict()})


@session_bp.route('/<session_key>/courts/<court_id>', methods=['DELETE'])
def remove_court(session_key, court_id):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    engine.remove_court(court_id)
    return jsonify({'message': 'Court removed'})


@session_bp.route('/<session_key>/courts/<court_id>/assign', methods=['POST'])
def assign_court(session_key, court_id):
    """Send queued round ``queue_index`` (default: the head) to this court."""
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    announcement = engine.assign(court_id, _parse_int(data.get('queue_index'), 0))
    return jsonify({
        'assignment': announcement.to_dict(),
        'court': engine.state.court(court_id).to_dict(),
    })


@session_bp.route('/<session_key>/courts/<court_id>/end', methods=['POST'])
def end_match(session_key, court_id):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    record = engine.end_match(court_id, data.get('score'))
    return jsonify({
        'recorded': record is not None,
        'match': record.to_dict() if record else None,
        'games_counter': engine.state.games_counter,
    })


@session_bp.route('/<session_key>/courts/<court_id>/cancel', methods=['POST'])
def cancel_match(session_key, court_id):
    """Return the court's players to the front of the queue without counting a game."""
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    returned = engine.cancel_match(court_id)
    return jsonify({'returned_player_ids': returned, 'queue': engine.state.queue})


@session_bp.route('/<session_key>/courts/<court_id>/swap', methods=['POST'])
def swap_court_player(session_key, court_id):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    new_player_id = str(data.get('new_player_id') or '').strip()
    if not new_player_id:
        return jsonify({'error': 'new_player_id is required'}), 400
    outcome = engine.swap_court_player(
        court_id,
        data.get('old_player_id') or None,
        new_player_id,
        slot_index=_parse_int(data.get('slot_index')),
        target_entry=_parse_int(data.get('target_entry')),
    )
    return jsonify({'outcome': outcome, 'court': engine.state.court(court_id).to_dict()})


@session_bp.route('/<session_key>/courts/<court_id>/announce', methods=['POST'])
def replay_announcement(session_key, court_id):
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    announcement = engine.replay_announcement(court_id)
    return jsonify({'announcement': announcement.to_dict()})


@session_bp.route('/<session_key>/courts/<court_id>/conflict', methods=['GET'])
def get_conflict(session_key, court_id):
    """Describe why the head round cannot go to this court and what would unblock it."""
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    if engine.state.court(court_id) is None:
        return jsonify({'error': 'Court not found'}), 404
    head_index = request.args.get('head_index', 0, type=int)

    resolution = None
    resolution_error = None
    try:
        resolution = engine.propose_resolution(head_index)
    except ResolutionImpossibleError as exc:
        resolution_error = exc.to_dict()

    skip = None
    if resolution is None or resolution.needed:
        try:
            skip = engine.propose_skip(head_index + 1).to_dict()
        except ResolutionImpossibleError:
            skip = None

    return jsonify({
        'blocked': bool(resolution_error) or bool(resolution and resolution.needed),
        'resolution': resolution.to_dict() if resolution else None,
        'resolution_error': resolution_error,
        'skip': skip,
    })


@session_bp.route('/<session_key>/courts/<court_id>/resolve', methods=['POST'])
def resolve_conflict(session_key, court_id):
    """Apply the swaps the operator confirmed and send the unblocked head round to this court.

    The body is the ``resolution`` object returned by GET ``/conflict``. If the
    queue changed in between, nothing is applied and the answer is 409.
    """
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    resolution = Resolution.from_dict(data)
    announcement = engine.apply_resolution(court_id, resolution)
    return jsonify({
        'resolution': resolution.to_dict(),
        'assignment': announcement.to_dict(),
    })


@session_bp.route('/<session_key>/courts/<court_id>/skip', methods=['POST'])
def assign_skipping(session_key, court_id):
    """Send a later, already-clear round to this court once the skip is confirmed."""
    engine = _engine_for(session_key)
    if engine is None:
        return _bad_key()
    data = _json_payload()
    if data is None:
        return _invalid_payload()
    skip_count = _parse_int(data.get('skip_count'))
    if skip_count is None:
        return jsonify({'error': 'skip_count is required'}), 400
    announcement = engine.assign_skipping(court_id, skip_count)
    return jsonify({'assignment': announcement.to_dict()})

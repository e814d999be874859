"""Roster and court management for a session."""
from shuttle.engine.errors import (
    CourtBusyError, InvalidEntryError, NotFoundError, PlayerBusyError,
)
from shuttle.engine.state import (
    DEFAULT_LEVEL, DEFAULT_TARGET_GAMES, GENDERS, Court, Player, SessionState,
    clamp_level, court_name_for, default_courts, new_id,
)


def _normalize_gender(raw_gender):
    gender = str(raw_gender or 'male').strip().lower()
    if gender not in GENDERS:
        raise InvalidEntryError(f'Gender must be one of {", ".join(GENDERS)}')
    return gender


def _normalize_target(raw_target):
    try:
        target = int(raw_target)
    except (TypeError, ValueError):
        raise InvalidEntryError('Target games must be an integer')
    if target < 1:
        raise InvalidEntryError('Target games must be at least 1')
    return target


def _build_player(name, gender='male', level=DEFAULT_LEVEL, target_games=DEFAULT_TARGET_GAMES):
    clean_name = str(name or '').strip()
    if not clean_name:
        raise InvalidEntryError('Player name is required')
    try:
        level_value = clamp_level(level)
    except (TypeError, ValueError):
        raise InvalidEntryError('Level must be an integer')
    return Player(
        id=new_id(),
        name=clean_name,
        gender=_normalize_gender(gender),
        level=level_value,
        target_games=_normalize_target(target_games),
    )


def _require_player(state, player_id):
    player = state.player(player_id)
    if not player:
        raise NotFoundError('Player not found', player_id=player_id)
    return player


def _require_court(state, court_id):
    court = state.court(court_id)
    if not court:
        raise NotFoundError('Court not found', court_id=court_id)
    return court


def add_player(state, name, gender='male', level=DEFAULT_LEVEL, target_games=DEFAULT_TARGET_GAMES):
    player = _build_player(name, gender, level, target_games)
    next_state = state.clone()
    next_state.players.append(player)
    return next_state, player


def bulk_add_players(state, rows):
    """Add several players at once; one invalid row rejects the whole batch."""
    new_players = [
        _build_player(
            row.get('name'),
            row.get('gender', 'male'),
            row.get('level', DEFAULT_LEVEL),
            row.get('target_games', DEFAULT_TARGET_GAMES),
        )
        for row in rows
    ]
    next_state = state.clone()
    next_state.players.extend(new_players)
    return next_state, new_players


def update_player_level(state, player_id, level):
    next_state = state.clone()
    player = _require_player(next_state, player_id)
    try:
        player.level = clamp_level(level)
    except (TypeError, ValueError):
        raise InvalidEntryError('Level must be an integer')
    return next_state, player


def update_target_games(state, player_id, target_games):
    next_state = state.clone()
    player = _require_player(next_state, player_id)
    player.target_games = _normalize_target(target_games)
    return next_state, player


def toggle_pause(state, player_id):
    next_state = state.clone()
    player = _require_player(next_state, player_id)
    player.is_paused = not player.is_paused
    return next_state, player


def delete_player(state, player_id):
    _require_player(state, player_id)
    if player_id in state.busy_ids():
        raise PlayerBusyError(
            'Player is playing or queued; remove them from the court or queue first',
            player_id=player_id,
        )
    next_state = state.clone()
    next_state.players = [p for p in next_state.players if p.id != player_id]
    return next_state, None


def add_court(state, name=None):
    next_state = state.clone()
    court = Court(
        id=new_id(),
        name=str(name or '').strip() or court_name_for(len(next_state.courts)),
    )
    next_state.courts.append(court)
    return next_state, court


def remove_court(state, court_id):
    court = _require_court(state, court_id)
    if court.is_active:
        raise CourtBusyError('End the match on this court before removing it', court_id=court_id)
    next_state = state.clone()
    next_state.courts = [c for c in next_state.courts if c.id != court_id]
    return next_state, None


def rename_court(state, court_id, name):
    next_state = state.clone()
    court = _require_court(next_state, court_id)
    court.name = str(name or '').strip() or court.name
    return next_state, court


def reset_session(court_count=None):
    """Fresh session: empty roster, queue and history with the default courts."""
    if court_count is None:
        return SessionState()
    return SessionState(courts=default_courts(max(1, int(court_count))))


def update_player(state, player_id, level=None, target_games=None):
    """Apply a level and/or target edit as one change."""
    next_state, player = state, _require_player(state, player_id)
    if level is not None:
        next_state, player = update_player_level(next_state, player_id, level)
    if target_games is not None:
        next_state, player = update_target_games(next_state, player_id, target_games)
    return next_state, player

"""
Round generation: pick four players fairly, then split them into two teams.

Selection ranks every unpaused player by a projected game count (recorded
games, +1 while on court, +1 per appearance in the rounds already queued), so
consecutive calls inside one batch spread games without touching
``games_played``. Players still short of their personal target come first,
ordered by how many games they still need; players past their target fill in
afterwards, smallest surplus first.

The chosen four are split three ways ({01|23}, {02|13}, {03|12}) and the split
with the lowest penalty wins:

    level balance     |sum(A) - sum(B)| * 2
    mixed mode        +500 per team that is not one man and one woman
    partner repeat    weight per recent history team equal to a new team
    opponent repeat   weight per recent record where the two teams faced off
    queue repeat      the same two checks against rounds already queued

Repeat weights are small in ``normal`` mode and steep in ``avoid_repeat``.
"""
import math
import random

from shuttle.engine.errors import InsufficientPlayersError, InvalidEntryError
from shuttle.engine.state import SLOTS_PER_ENTRY, entry_players

MODE_NORMAL = 'normal'
MODE_MIXED = 'mixed'
MODE_AVOID_REPEAT = 'avoid_repeat'
LOCAL_MODES = (MODE_NORMAL, MODE_MIXED, MODE_AVOID_REPEAT)

RECENT_HISTORY_WINDOW = 25
LEVEL_WEIGHT = 2
NON_MIXED_TEAM_PENALTY = 500

_REPEAT_WEIGHTS = {
    MODE_NORMAL: {'partner': 15, 'opponent': 5, 'queue_partner': 20, 'queue_opponent': 8},
    MODE_MIXED: {'partner': 15, 'opponent': 5, 'queue_partner': 20, 'queue_opponent': 8},
    MODE_AVOID_REPEAT: {'partner': 150, 'opponent': 60, 'queue_partner': 220, 'queue_opponent': 90},
}

SPLITS = (
    ((0, 1), (2, 3)),
    ((0, 2), (1, 3)),
    ((0, 3), (1, 2)),
)


def _normalize_mode(mode):
    mode = str(mode or MODE_NORMAL).strip().lower()
    if mode not in LOCAL_MODES:
        raise InvalidEntryError(f'Unknown scheduling mode: {mode}')
    return mode


def projected_games(state, players, queue_so_far):
    playing = state.playing_ids()
    projected = {
        p.id: p.games_played + (1 if p.id in playing else 0)
        for p in players
    }
    for entry in queue_so_far:
        for pid in entry:
            if pid and pid in projected:
                projected[pid] += 1
    return projected


def rank_candidates(players, projected, rng):
    """Order players by how much they still need a game."""
    tie_breaks = {p.id: rng.random() for p in players}

    def sort_key(player):
        target = player.effective_target
        games = projected[player.id]
        if games < target:
            return (0, -(target - games), games, tie_breaks[player.id])
        return (1, games - target, -target, tie_breaks[player.id])

    return sorted(players, key=sort_key)


def _same_pair(team, other):
    return set(team) == set(other)


def _faced(team_a, team_b, other_a, other_b):
    a, b = set(team_a), set(team_b)
    x, y = set(other_a), set(other_b)
    return bool((a & x and b & y) or (a & y and b & x))


def _is_mixed(team, players_by_id):
    genders = {players_by_id[pid].gender for pid in team}
    return genders == {'male', 'female'}


def split_penalty(team_a, team_b, players_by_id, recent_history, queue_so_far, mode=MODE_NORMAL):
    weights = _REPEAT_WEIGHTS[mode]
    level_a = sum(players_by_id[pid].level for pid in team_a)
    level_b = sum(players_by_id[pid].level for pid in team_b)
    penalty = abs(level_a - level_b) * LEVEL_WEIGHT

    if mode == MODE_MIXED:
        for team in (team_a, team_b):
            if not _is_mixed(team, players_by_id):
                penalty += NON_MIXED_TEAM_PENALTY

    for record in recent_history:
        for past_team in record.teams:
            if _same_pair(team_a, past_team):
                penalty += weights['partner']
            if _same_pair(team_b, past_team):
                penalty += weights['partner']
        if _faced(team_a, team_b, record.teams[0], record.teams[1]):
            penalty += weights['opponent']

    for entry in queue_so_far:
        queued_a = [pid for pid in entry[0:2] if pid]
        queued_b = [pid for pid in entry[2:4] if pid]
        for queued_team in (queued_a, queued_b):
            if len(queued_team) != 2:
                continue
            if _same_pair(team_a, queued_team):
                penalty += weights['queue_partner']
            if _same_pair(team_b, queued_team):
                penalty += weights['queue_partner']
        if queued_a and queued_b and _faced(team_a, team_b, queued_a, queued_b):
            penalty += weights['queue_opponent']
    return penalty


def best_split(selected_ids, players_by_id, history, queue_so_far, mode=MODE_NORMAL):
    """Return ([A0, A1, B0, B1], penalty) for the lowest-penalty split of four ids."""
    recent_history = history[-RECENT_HISTORY_WINDOW:]
    best_entry = None
    best_penalty = math.inf
    for (a0, a1), (b0, b1) in SPLITS:
        team_a = (selected_ids[a0], selected_ids[a1])
        team_b = (selected_ids[b0], selected_ids[b1])
        penalty = split_penalty(team_a, team_b, players_by_id, recent_history, queue_so_far, mode)
        if penalty < best_penalty:
            best_penalty = penalty
            best_entry = [team_a[0], team_a[1], team_b[0], team_b[1]]
    return best_entry, best_penalty


def generate_round(state, queue_so_far=None, mode=MODE_NORMAL, rng=None):
    """Build one round, or None when fewer than four players are eligible."""
    mode = _normalize_mode(mode)
    rng = rng or random.Random()
    queue_so_far = state.queue if queue_so_far is None else queue_so_far

    eligible = state.eligible_players()
    if len(eligible) < SLOTS_PER_ENTRY:
        return None

    projected = projected_games(state, eligible, queue_so_far)
    ranked = rank_candidates(eligible, projected, rng)
    selected_ids = [p.id for p in ranked[:SLOTS_PER_ENTRY]]
    entry, _ = best_split(selected_ids, state.players_by_id(), state.history, queue_so_far, mode)
    return entry


def generate_rounds(state, count, mode=MODE_NORMAL, rng=None):
    """Generate ``count`` rounds against the current queue without committing them."""
    mode = _normalize_mode(mode)
    rng = rng or random.Random()
    if len(state.eligible_players()) < SLOTS_PER_ENTRY:
        raise InsufficientPlayersError(
            'At least 4 active players are needed to schedule a round',
            eligible=len(state.eligible_players()),
        )
    queue_so_far = [list(entry) for entry in state.queue]
    rounds = []
    for _ in range(max(0, int(count))):
        entry = generate_round(state, queue_so_far, mode, rng)
        if entry is None:
            break
        rounds.append(entry)
        queue_so_far.append(entry)
    return rounds


def schedule_rounds(state, count, mode=MODE_NORMAL, rng=None):
    """Generate ``count`` rounds and append them to the queue."""
    rounds = generate_rounds(state, count, mode, rng)
    next_state = state.clone()
    next_state.queue.extend([list(entry) for entry in rounds])
    return next_state, rounds


def validate_suggested_rounds(state, suggestions, round_count, eligible_ids=None):
    """Check an externally produced round list; returns the cleaned entries.

    Raises InvalidEntryError when the shape is wrong: not a list, too many
    rounds, or a round that is not four distinct known player ids.
    """
    if not isinstance(suggestions, list):
        raise InvalidEntryError('Suggested rounds must be a list')
    if len(suggestions) > round_count:
        raise InvalidEntryError(
            f'Expected at most {round_count} rounds, got {len(suggestions)}'
        )
    allowed = set(eligible_ids) if eligible_ids is not None else set(state.players_by_id())
    cleaned = []
    for raw_entry in suggestions:
        if not isinstance(raw_entry, list) or len(raw_entry) != SLOTS_PER_ENTRY:
            raise InvalidEntryError('Each suggested round must list exactly 4 player ids')
        entry = [str(pid) if pid is not None else '' for pid in raw_entry]
        if len(set(entry_players(entry))) != SLOTS_PER_ENTRY:
            raise InvalidEntryError('Suggested round repeats a player or leaves a slot empty')
        unknown = [pid for pid in entry if pid not in allowed]
        if unknown:
            raise InvalidEntryError('Suggested round references unknown players', player_ids=unknown)
        cleaned.append(entry)
    return cleaned


def suggested_round_count(state):
    """How many more rounds are needed for every active player to reach their target."""
    active = state.eligible_players()
    total_target_games = sum(p.effective_target for p in active)
    target_match_count = math.ceil(total_target_games / SLOTS_PER_ENTRY)
    active_matches = sum(1 for court in state.courts if court.is_active)
    return max(1, target_match_count - len(state.history) - active_matches - len(state.queue))

"""Moving queued rounds onto courts and taking finished rounds off them."""
from dataclasses import dataclass, field
from typing import List

from shuttle.engine.errors import CourtBusyError, InvalidEntryError, NotFoundError
from shuttle.engine.state import (
    SLOTS_PER_ENTRY, MatchHistoryRecord, entry_players, entry_teams,
)
from shuttle.time_utils import utcnow_naive


@dataclass
class Announcement:
    court_id: str
    court_name: str
    player_ids: List[str]
    player_names: List[str]

    @property
    def message(self):
        return f'{", ".join(self.player_names)} please go to {self.court_name}'

    def to_dict(self):
        return {
            'court_id': self.court_id,
            'court_name': self.court_name,
            'player_ids': list(self.player_ids),
            'player_names': list(self.player_names),
            'message': self.message,
        }


@dataclass
class AutoAssignResult:
    assignments: List[Announcement] = field(default_factory=list)
    eligible: int = 0

    @property
    def filled(self):
        return len(self.assignments)

    def to_dict(self):
        return {
            'filled': self.filled,
            'eligible': self.eligible,
            'assignments': [a.to_dict() for a in self.assignments],
        }


def _announcement_for(state, court):
    player_ids = entry_players(court.players)
    return Announcement(
        court_id=court.id,
        court_name=court.name,
        player_ids=player_ids,
        player_names=state.player_names(player_ids),
    )


def _activate(court, entry, now):
    court.players = list(entry)
    court.is_active = True
    court.start_time = now


def _require_court(state, court_id):
    court = state.court(court_id)
    if not court:
        raise NotFoundError('Court not found', court_id=court_id)
    return court


def assign(state, court_id, queue_index=0, now=None):
    """Pop queue entry ``queue_index`` onto an idle court."""
    court = _require_court(state, court_id)
    if court.is_active:
        raise CourtBusyError('Court already has a match in progress', court_id=court_id)
    if not 0 <= queue_index < len(state.queue):
        raise NotFoundError('Queue entry not found', queue_index=queue_index)

    next_state = state.clone()
    entry = next_state.queue.pop(queue_index)
    target = next_state.court(court_id)
    _activate(target, entry, now or utcnow_naive())
    return next_state, _announcement_for(next_state, target)


def _is_ready(entry):
    return len(entry_players(entry)) == SLOTS_PER_ENTRY


def auto_assign_all(state, now=None):
    """Fill every idle court with the first queued round whose players are all free.

    Rounds still waiting on manual fill are passed over. Players placed on an
    earlier court in this pass count as busy for the later courts.
    """
    now = now or utcnow_naive()
    next_state = state.clone()
    busy = next_state.playing_ids()
    result = AutoAssignResult()

    for court in next_state.courts:
        if court.is_active:
            continue
        result.eligible += 1
        pick = None
        for idx, entry in enumerate(next_state.queue):
            if _is_ready(entry) and not busy.intersection(entry_players(entry)):
                pick = idx
                break
        if pick is None:
            continue
        entry = next_state.queue.pop(pick)
        busy.update(entry_players(entry))
        _activate(court, entry, now)
        result.assignments.append(_announcement_for(next_state, court))

    if not result.assignments:
        return state, result
    return next_state, result


def _normalize_score(score):
    if score is None:
        return None
    try:
        first, second = (int(value) for value in score)
    except (TypeError, ValueError):
        raise InvalidEntryError('Score must be a pair of integers')
    if first < 0 or second < 0:
        raise InvalidEntryError('Scores must be non-negative')
    return (first, second)


def end_match(state, court_id, score=None, now=None):
    """Finish the match on a court, recording it when all four slots were filled."""
    _require_court(state, court_id)
    score = _normalize_score(score)
    now = now or utcnow_naive()
    next_state = state.clone()
    court = next_state.court(court_id)

    record = None
    if len(court.players) == SLOTS_PER_ENTRY and _is_ready(court.players):
        duration = None
        if court.start_time:
            duration = max(0, int((now - court.start_time).total_seconds()))
        record = MatchHistoryRecord(
            timestamp=now,
            players=list(court.players),
            teams=entry_teams(court.players),
            duration_seconds=duration,
            score=score,
        )
        next_state.history.append(record)
        next_state.games_counter += 1
        for pid in court.players:
            player = next_state.player(pid)
            if player:
                player.games_played += 1

    court.clear()
    return next_state, record


def cancel_match(state, court_id):
    """Send a court's players back to the front of the queue without recording a game."""
    _require_court(state, court_id)
    next_state = state.clone()
    court = next_state.court(court_id)
    returned = entry_players(court.players)
    if returned:
        entry = (returned + [None] * SLOTS_PER_ENTRY)[:SLOTS_PER_ENTRY]
        next_state.queue.insert(0, entry)
    court.clear()
    return next_state, returned


def court_announcement(state, court_id):
    """Announcement for a court already in play (used to repeat a call)."""
    court = _require_court(state, court_id)
    if not court.is_active or not entry_players(court.players):
        raise NotFoundError('No match in progress on this court', court_id=court_id)
    return _announcement_for(state, court)

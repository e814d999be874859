"""
Unblocking the head of the queue when some of its players are still on court.

For every blocked player the resolver looks through the other queued rounds
for the free player closest in level (fewest games played breaks ties). A
proposal exists only when every blocked player gets a distinct replacement.
Applying it trades each blocked player into the slot their replacement
vacated, then sends the now-clear round to the requesting court.
"""
from dataclasses import dataclass, field
from typing import List

from shuttle.engine.dispatcher import assign
from shuttle.engine.errors import (
    InvalidEntryError, NotFoundError, ResolutionImpossibleError, StaleResolutionError,
)
from shuttle.engine.state import SLOTS_PER_ENTRY, entry_players

LEVEL_DISTANCE_WEIGHT = 1000


@dataclass
class Replacement:
    blocked_id: str
    head_slot: int
    replacement_id: str
    entry_index: int
    entry_slot: int
    score: int

    def to_dict(self):
        return {
            'blocked_id': self.blocked_id,
            'head_slot': self.head_slot,
            'replacement_id': self.replacement_id,
            'entry_index': self.entry_index,
            'entry_slot': self.entry_slot,
            'score': self.score,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise InvalidEntryError('Each replacement must be an object')
        try:
            item = cls(
                blocked_id=str(data['blocked_id']),
                head_slot=int(data['head_slot']),
                replacement_id=str(data['replacement_id']),
                entry_index=int(data['entry_index']),
                entry_slot=int(data['entry_slot']),
                score=int(data.get('score') or 0),
            )
        except (KeyError, TypeError, ValueError):
            raise InvalidEntryError('Replacement is missing or has invalid fields')
        if not (0 <= item.head_slot < SLOTS_PER_ENTRY and 0 <= item.entry_slot < SLOTS_PER_ENTRY):
            raise InvalidEntryError('Replacement slot out of range')
        return item


@dataclass
class Resolution:
    head_index: int
    replacements: List[Replacement] = field(default_factory=list)

    @property
    def needed(self):
        return bool(self.replacements)

    def to_dict(self):
        return {
            'head_index': self.head_index,
            'replacements': [r.to_dict() for r in self.replacements],
        }

    @classmethod
    def from_dict(cls, data):
        """Rebuild a proposal the operator confirmed; field errors raise InvalidEntryError."""
        if not isinstance(data, dict) or not isinstance(data.get('replacements'), list):
            raise InvalidEntryError('replacements must be a list')
        try:
            head_index = int(data.get('head_index') or 0)
        except (TypeError, ValueError):
            raise InvalidEntryError('head_index must be an integer')
        replacements = [Replacement.from_dict(item) for item in data['replacements']]
        if len({r.replacement_id for r in replacements}) != len(replacements) \
                or len({r.head_slot for r in replacements}) != len(replacements):
            raise InvalidEntryError('Each replacement must use a distinct player and slot')
        if any(r.entry_index == head_index for r in replacements):
            raise InvalidEntryError('Replacements must come from another queued round')
        return cls(head_index=head_index, replacements=replacements)


@dataclass
class SkipProposal:
    queue_index: int

    @property
    def skipped(self):
        return self.queue_index

    def to_dict(self):
        return {'queue_index': self.queue_index, 'skipped': self.skipped}


def blocked_players(state, queue_index=0):
    if not 0 <= queue_index < len(state.queue):
        raise NotFoundError('Queue entry not found', queue_index=queue_index)
    playing = state.playing_ids()
    return [pid for pid in state.queue[queue_index] if pid and pid in playing]


def propose_resolution(state, head_index=0):
    """Pick a replacement for every blocked player of the head entry."""
    blocked = blocked_players(state, head_index)
    resolution = Resolution(head_index=head_index)
    if not blocked:
        return resolution

    head = state.queue[head_index]
    playing = state.playing_ids()
    players = state.players_by_id()
    chosen = set()
    missing = []

    for blocked_id in blocked:
        blocked_level = players[blocked_id].level if blocked_id in players else 0
        best = None
        for entry_index, entry in enumerate(state.queue):
            if entry_index == head_index or blocked_id in entry:
                continue
            for entry_slot, candidate_id in enumerate(entry):
                if not candidate_id or candidate_id not in players:
                    continue
                if candidate_id in playing or candidate_id in chosen or candidate_id in head:
                    continue
                candidate = players[candidate_id]
                score = abs(candidate.level - blocked_level) * LEVEL_DISTANCE_WEIGHT + candidate.games_played
                if best is None or score < best.score:
                    best = Replacement(
                        blocked_id=blocked_id,
                        head_slot=head.index(blocked_id),
                        replacement_id=candidate_id,
                        entry_index=entry_index,
                        entry_slot=entry_slot,
                        score=score,
                    )
        if best is None:
            missing.append(blocked_id)
            continue
        chosen.add(best.replacement_id)
        resolution.replacements.append(best)

    if missing:
        raise ResolutionImpossibleError(
            'No free replacement found for every busy player',
            blocked_ids=blocked,
            unresolved_ids=missing,
        )
    return resolution


def _check_still_valid(state, resolution):
    head = state.queue[resolution.head_index] if 0 <= resolution.head_index < len(state.queue) else None
    if head is None:
        raise StaleResolutionError('Queue changed since the proposal was made')
    for item in resolution.replacements:
        if head[item.head_slot] != item.blocked_id:
            raise StaleResolutionError('Queue changed since the proposal was made')
        if not 0 <= item.entry_index < len(state.queue):
            raise StaleResolutionError('Queue changed since the proposal was made')
        source = state.queue[item.entry_index]
        if source[item.entry_slot] != item.replacement_id:
            raise StaleResolutionError('Queue changed since the proposal was made')
        if item.blocked_id in source or item.replacement_id in head:
            raise InvalidEntryError('Swap would put a player twice in one round')


def apply_resolution(state, court_id, resolution, now=None):
    """Perform every swap of ``resolution`` and dispatch the head entry to ``court_id``."""
    _check_still_valid(state, resolution)
    next_state = state.clone()
    head = next_state.queue[resolution.head_index]
    for item in resolution.replacements:
        head[item.head_slot] = item.replacement_id
        next_state.queue[item.entry_index][item.entry_slot] = item.blocked_id

    playing = next_state.playing_ids()
    if any(pid in playing for pid in head if pid):
        raise StaleResolutionError('Head entry is still blocked after swapping')
    return assign(next_state, court_id, resolution.head_index, now)


def propose_skip(state, start_index=0):
    """First queued round at or after ``start_index`` with every player free."""
    playing = state.playing_ids()
    for idx in range(max(0, start_index), len(state.queue)):
        entry = state.queue[idx]
        filled = entry_players(entry)
        if len(filled) == SLOTS_PER_ENTRY and not playing.intersection(filled):
            return SkipProposal(queue_index=idx)
    raise ResolutionImpossibleError('Every queued round has a player still on court')


def assign_skipping(state, court_id, skip_count, now=None):
    """Dispatch the entry ``skip_count`` places down once the operator confirmed the skip."""
    if not 0 <= skip_count < len(state.queue):
        raise NotFoundError('Queue entry not found', queue_index=skip_count)
    playing = state.playing_ids()
    if playing.intersection(entry_players(state.queue[skip_count])):
        raise StaleResolutionError('Selected round has a player still on court')
    return assign(state, court_id, skip_count, now)

"""Pending-round queue operations.

Swaps resolve in a fixed order: an in-entry transposition when the incoming
player is already in the same round, a cross-entry swap when the caller names a
target round holding the incoming player, otherwise a direct overwrite. The
overwrite may leave one player in two queued rounds; ``find_other_entries`` is
how callers detect that before choosing.
"""
from shuttle.engine.errors import InvalidEntryError, NotFoundError, SlotNotFoundError
from shuttle.engine.state import SLOTS_PER_ENTRY, blank_entry, entry_players

SWAP_TRANSPOSED = 'transposed'
SWAP_CROSS_ENTRY = 'cross_entry'
SWAP_OVERWRITTEN = 'overwritten'

_DIRECTIONS = {'up': -1, 'down': 1}


def normalize_entry(state, raw_entry):
    if not isinstance(raw_entry, (list, tuple)) or len(raw_entry) != SLOTS_PER_ENTRY:
        raise InvalidEntryError('A queue entry must have exactly 4 slots')
    entry = [str(pid) if pid else None for pid in raw_entry]
    filled = entry_players(entry)
    if len(set(filled)) != len(filled):
        raise InvalidEntryError('A player cannot appear twice in one round')
    known = state.players_by_id()
    unknown = [pid for pid in filled if pid not in known]
    if unknown:
        raise InvalidEntryError('Queue entry references unknown players', player_ids=unknown)
    return entry


def append_entry(state, raw_entry):
    entry = normalize_entry(state, raw_entry)
    next_state = state.clone()
    next_state.queue.append(entry)
    return next_state, entry


def append_blank(state):
    next_state = state.clone()
    entry = blank_entry()
    next_state.queue.append(entry)
    return next_state, entry


def remove_at(state, index):
    if not 0 <= index < len(state.queue):
        return state, None
    next_state = state.clone()
    removed = next_state.queue.pop(index)
    return next_state, removed


def reorder(state, index, direction):
    try:
        step = _DIRECTIONS[str(direction).strip().lower()]
    except KeyError:
        raise InvalidEntryError('Direction must be up or down')
    target = index + step
    if not 0 <= index < len(state.queue) or not 0 <= target < len(state.queue):
        return state, False
    next_state = state.clone()
    queue = next_state.queue
    queue[index], queue[target] = queue[target], queue[index]
    return next_state, True


def find_other_entries(state, entry_index, player_id):
    """Indices of queued rounds other than ``entry_index`` that hold ``player_id``."""
    if not player_id:
        return []
    return [
        idx for idx, entry in enumerate(state.queue)
        if idx != entry_index and player_id in entry
    ]


def _locate_slot(slots, old_value, slot_index=None):
    if old_value:
        return slots.index(old_value) if old_value in slots else -1
    if slot_index is not None and 0 <= slot_index < len(slots) and not slots[slot_index]:
        return slot_index
    return slots.index(None) if None in slots else -1


def _apply_swap(next_state, slots, position, old_value, new_value, target_entry):
    """Write ``new_value`` into ``slots[position]`` using the three-outcome rule."""
    if new_value in slots:
        existing = slots.index(new_value)
        slots[existing] = old_value
        slots[position] = new_value
        return SWAP_TRANSPOSED

    if target_entry is not None:
        if not 0 <= target_entry < len(next_state.queue):
            raise NotFoundError('Target queue entry not found', target_entry=target_entry)
        target = next_state.queue[target_entry]
        if target is slots:
            raise InvalidEntryError('Target entry must differ from the edited round')
        if new_value not in target:
            raise SlotNotFoundError(
                'Incoming player is not in the target entry', target_entry=target_entry,
            )
        if old_value and old_value in target:
            raise InvalidEntryError(
                'Swap would place the outgoing player twice in the target entry',
                target_entry=target_entry,
            )
        target[target.index(new_value)] = old_value
        slots[position] = new_value
        return SWAP_CROSS_ENTRY

    slots[position] = new_value
    return SWAP_OVERWRITTEN


def swap_slot(state, entry_index, old_value, new_value, slot_index=None, target_entry=None):
    """Put ``new_value`` where ``old_value`` sits in queued round ``entry_index``.

    ``old_value`` may be empty, in which case ``slot_index`` picks which empty
    slot is being filled. Returns (state, outcome).
    """
    if not 0 <= entry_index < len(state.queue):
        raise NotFoundError('Queue entry not found', queue_index=entry_index)
    old_value = old_value or None
    if not new_value:
        raise InvalidEntryError('A replacement player is required')
    if state.player(new_value) is None:
        raise NotFoundError('Player not found', player_id=new_value)

    position = _locate_slot(state.queue[entry_index], old_value, slot_index)
    if position == -1:
        raise SlotNotFoundError('Slot to replace was not found', queue_index=entry_index)

    next_state = state.clone()
    slots = next_state.queue[entry_index]
    outcome = _apply_swap(next_state, slots, position, old_value, new_value, target_entry)
    return next_state, outcome


def swap_court_player(state, court_id, old_value, new_value, slot_index=None, target_entry=None):
    """Same contract as ``swap_slot`` but against an active court's slots."""
    court = state.court(court_id)
    if not court:
        raise NotFoundError('Court not found', court_id=court_id)
    old_value = old_value or None
    if not new_value:
        raise InvalidEntryError('A replacement player is required')
    if state.player(new_value) is None:
        raise NotFoundError('Player not found', player_id=new_value)

    position = _locate_slot(court.players, old_value, slot_index)
    if position == -1:
        raise SlotNotFoundError('Slot to replace was not found', court_id=court_id)

    next_state = state.clone()
    slots = next_state.court(court_id).players
    outcome = _apply_swap(next_state, slots, position, old_value, new_value, target_entry)
    return next_state, outcome


def queued_entries_for_player(state, player_id):
    """Every queued round index holding ``player_id`` (duplicate prompt for court swaps)."""
    return find_other_entries(state, None, player_id)

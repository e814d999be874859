"""
Live session engine: the single writer for one rotation session.

Each public method runs one pure engine operation against the latest committed
state while holding the session lock, saves the result, swaps it in as the new
latest state, and only then broadcasts. The auto-assign tick reads the same
latest-state cell, so it never works from a stale copy, and it skips its turn
when another operation is holding the lock.
"""
import logging
import random
import threading

from shuttle.engine import conflicts, dispatcher, generator, queue_ops, roster, stats
from shuttle.engine.errors import ExternalStrategyUnavailable, InsufficientPlayersError
from shuttle.engine.state import SLOTS_PER_ENTRY, SessionState
from shuttle.services.suggestion import fetch_suggested_rounds

logger = logging.getLogger(__name__)

MODE_AI = 'ai'
SCHEDULE_MODES = generator.LOCAL_MODES + (MODE_AI,)


def schedule_with_strategy(state, count, strategy, rng=None):
    """Append ``count`` rounds from ``strategy``, falling back to local generation.

    Returns (state, result) where result names the mode actually used and, on
    fallback, why the remote strategy was not used.
    """
    eligible = state.eligible_players()
    if len(eligible) < SLOTS_PER_ENTRY:
        raise InsufficientPlayersError(
            'At least 4 active players are needed to schedule a round',
            eligible=len(eligible),
        )
    try:
        rounds = fetch_suggested_rounds(strategy, state, count)
    except ExternalStrategyUnavailable as exc:
        logger.warning('Remote suggestions unavailable, using local scheduling: %s', exc.message)
        next_state, rounds = generator.schedule_rounds(state, count, generator.MODE_NORMAL, rng)
        return next_state, {
            'rounds': rounds, 'mode': generator.MODE_NORMAL, 'fallback_reason': exc.message,
        }

    next_state = state.clone()
    next_state.queue.extend([list(entry) for entry in rounds])
    return next_state, {'rounds': rounds, 'mode': MODE_AI, 'fallback_reason': None}


class SessionEngine:
    def __init__(self, session_key, state=None, store=None, announcer=None,
                 strategy=None, rng=None, default_court_count=None):
        self.session_key = session_key
        self._state = state or SessionState()
        self._store = store
        self._announcer = announcer
        self._strategy = strategy
        self._rng = rng or random.Random()
        self.default_court_count = default_court_count
        self._lock = threading.Lock()
        self.auto_assign_timer = None

    @property
    def state(self):
        """Latest committed state."""
        return self._state

    # ── commit plumbing ──────────────────────────────────────────────────

    def _swap_in(self, next_state, reason):
        if next_state is self._state:
            return False
        if self._store is not None:
            self._store.save(self.session_key, next_state)
        self._state = next_state
        logger.debug('Session %s committed (%s)', self.session_key, reason)
        return True

    def _commit(self, reason, operation, *args, **kwargs):
        with self._lock:
            next_state, result = operation(self._state, *args, **kwargs)
            changed = self._swap_in(next_state, reason)
        if changed:
            self._notify(reason)
        return result

    def _notify(self, reason):
        if self._announcer is None:
            return
        try:
            self._announcer.session_updated(self.session_key, reason)
        except Exception:
            logger.exception('Session update broadcast failed for %s', self.session_key)

    def _announce(self, announcements):
        if self._announcer is None:
            return
        for announcement in announcements:
            try:
                self._announcer.announce(self.session_key, announcement)
            except Exception:
                logger.exception(
                    'Announcement for %s on %s failed', self.session_key, announcement.court_name,
                )

    # ── roster ───────────────────────────────────────────────────────────

    def add_player(self, name, gender='male', level=7, target_games=6):
        return self._commit('player_added', roster.add_player, name, gender, level, target_games)

    def bulk_add_players(self, rows):
        return self._commit('players_imported', roster.bulk_add_players, rows)

    def update_player(self, player_id, level=None, target_games=None):
        return self._commit('player_updated', roster.update_player, player_id, level, target_games)

    def toggle_pause(self, player_id):
        return self._commit('player_paused', roster.toggle_pause, player_id)

    def delete_player(self, player_id):
        return self._commit('player_deleted', roster.delete_player, player_id)

    def add_court(self, name=None):
        return self._commit('court_added', roster.add_court, name)

    def remove_court(self, court_id):
        return self._commit('court_removed', roster.remove_court, court_id)

    def rename_court(self, court_id, name):
        return self._commit('court_renamed', roster.rename_court, court_id, name)

    def reset(self, court_count=None):
        if court_count is None:
            court_count = self.default_court_count
        return self._commit('session_reset', lambda _state: (roster.reset_session(court_count), None))

    # ── queue ────────────────────────────────────────────────────────────

    def schedule(self, count, mode=generator.MODE_NORMAL):
        if mode == MODE_AI:
            return self._commit('rounds_scheduled', schedule_with_strategy, count, self._strategy, self._rng)
        rounds = self._commit('rounds_scheduled', generator.schedule_rounds, count, mode, self._rng)
        return {'rounds': rounds, 'mode': mode, 'fallback_reason': None}

    def append_entry(self, entry):
        return self._commit('queue_entry_added', queue_ops.append_entry, entry)

    def append_blank(self):
        return self._commit('queue_entry_added', queue_ops.append_blank)

    def remove_entry(self, index):
        return self._commit('queue_entry_removed', queue_ops.remove_at, index)

    def move_entry(self, index, direction):
        return self._commit('queue_reordered', queue_ops.reorder, index, direction)

    def swap_slot(self, entry_index, old_value, new_value, slot_index=None, target_entry=None):
        return self._commit(
            'queue_swap', queue_ops.swap_slot,
            entry_index, old_value, new_value, slot_index, target_entry,
        )

    def swap_court_player(self, court_id, old_value, new_value, slot_index=None, target_entry=None):
        return self._commit(
            'court_swap', queue_ops.swap_court_player,
            court_id, old_value, new_value, slot_index, target_entry,
        )

    # ── dispatch ─────────────────────────────────────────────────────────

    def assign(self, court_id, queue_index=0):
        announcement = self._commit('court_assigned', dispatcher.assign, court_id, queue_index)
        logger.info('Session %s: round sent to %s', self.session_key, announcement.court_name)
        self._announce([announcement])
        return announcement

    def auto_assign_all(self):
        result = self._commit('courts_auto_assigned', dispatcher.auto_assign_all)
        if result.filled:
            logger.info(
                'Session %s: auto-assigned %s of %s idle courts',
                self.session_key, result.filled, result.eligible,
            )
        else:
            logger.info('Session %s: no queued round could be assigned', self.session_key)
        self._announce(result.assignments)
        return result

    def auto_assign_tick(self):
        """Timer entry point; returns None when another operation is in flight."""
        if not self._lock.acquire(blocking=False):
            logger.debug('Session %s: auto-assign tick skipped, state busy', self.session_key)
            return None
        try:
            next_state, result = dispatcher.auto_assign_all(self._state)
            changed = self._swap_in(next_state, 'auto_assign_tick')
        finally:
            self._lock.release()
        if changed:
            self._notify('auto_assign_tick')
            self._announce(result.assignments)
        return result

    def end_match(self, court_id, score=None):
        record = self._commit('match_ended', dispatcher.end_match, court_id, score)
        if record is not None:
            logger.info(
                'Session %s: match recorded (%s s)', self.session_key, record.duration_seconds,
            )
        return record

    def cancel_match(self, court_id):
        return self._commit('match_cancelled', dispatcher.cancel_match, court_id)

    def replay_announcement(self, court_id):
        announcement = dispatcher.court_announcement(self._state, court_id)
        self._announce([announcement])
        return announcement

    # ── conflicts ────────────────────────────────────────────────────────

    def propose_resolution(self, head_index=0):
        return conflicts.propose_resolution(self._state, head_index)

    def apply_resolution(self, court_id, resolution):
        """Apply a confirmed proposal; a queue that moved on since raises StaleResolutionError."""
        announcement = self._commit(
            'conflict_resolved', conflicts.apply_resolution, court_id, resolution,
        )
        logger.info(
            'Session %s: %s swap(s) applied to free %s',
            self.session_key, len(resolution.replacements), announcement.court_name,
        )
        self._announce([announcement])
        return announcement

    def propose_skip(self, start_index=0):
        return conflicts.propose_skip(self._state, start_index)

    def assign_skipping(self, court_id, skip_count):
        announcement = self._commit('court_assigned', conflicts.assign_skipping, court_id, skip_count)
        self._announce([announcement])
        return announcement

    # ── reads ────────────────────────────────────────────────────────────

    def snapshot(self):
        state = self._state
        data = state.to_dict()
        data.update({
            'session_key': self.session_key,
            'playing_ids': sorted(state.playing_ids()),
            'queued_ids': sorted(state.queued_ids()),
            'busy_ids': sorted(state.busy_ids()),
            'suggested_rounds': generator.suggested_round_count(state),
            'auto_assign': self.auto_assign_timer.to_dict() if self.auto_assign_timer else None,
        })
        return data

    def player_stats(self, player_id):
        return stats.player_stats(self._state, player_id)

    def analyze_queue(self):
        return stats.analyze_queue(self._state)

    def configure_auto_assign(self, enabled=None, interval=None):
        if self.auto_assign_timer is None:
            return None
        return self.auto_assign_timer.configure(enabled=enabled, interval=interval)

    def shutdown(self):
        if self.auto_assign_timer is not None:
            self.auto_assign_timer.stop()

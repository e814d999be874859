"""Tests for the live session engine and the auto-assign timer."""
import random

import pytest
from shuttle.engine.errors import PlayerBusyError, StaleResolutionError
from shuttle.services.auto_assign import MIN_INTERVAL_SECONDS, AutoAssignTimer
from shuttle.services.session_engine import SessionEngine


class _RecordingStore:
    def __init__(self):
        self.saved = []

    def save(self, session_key, state):
        self.saved.append((session_key, state))


class _RecordingAnnouncer:
    def __init__(self):
        self.announcements = []
        self.updates = []

    def announce(self, session_key, announcement):
        self.announcements.append(announcement.message)

    def session_updated(self, session_key, reason=''):
        self.updates.append(reason)


class _BrokenAnnouncer:
    def announce(self, session_key, announcement):
        raise ConnectionError('speaker offline')

    def session_updated(self, session_key, reason=''):
        raise ConnectionError('socket closed')


def _engine(make_state, announcer=None, **state_kwargs):
    store = _RecordingStore()
    engine = SessionEngine(
        'club-night',
        state=make_state(**state_kwargs),
        store=store,
        announcer=announcer or _RecordingAnnouncer(),
        rng=random.Random(4),
    )
    return engine, store


def test_commits_save_then_swap_then_notify(make_state):
    engine, store = _engine(make_state, players=4)
    before = engine.state

    player = engine.add_player('Rosa', gender='female', level=9)

    assert engine.state is not before
    assert engine.state.player(player.id).name == 'Rosa'
    assert store.saved == [('club-night', engine.state)]
    assert engine._announcer.updates == ['player_added']


def test_failed_operation_keeps_state_and_skips_save(make_state):
    engine, store = _engine(make_state, players=4, courts={'1': ['p1', 'p2', 'p3', 'p4']})
    before = engine.state
    with pytest.raises(PlayerBusyError):
        engine.delete_player('p1')
    assert engine.state is before
    assert store.saved == []


def test_noop_operation_is_not_saved(make_state):
    engine, store = _engine(make_state, players=4)
    assert engine.remove_entry(3) is None
    assert engine.move_entry(0, 'up') is False
    assert store.saved == []
    assert engine._announcer.updates == []


def test_assign_announces_court_call(make_state):
    engine, _ = _engine(make_state, players=4, queue=[['p1', 'p2', 'p3', 'p4']])
    announcement = engine.assign('1')
    assert engine.state.court('1').is_active
    assert engine._announcer.announcements == [announcement.message]


def test_broadcast_failure_does_not_fail_dispatch(make_state):
    engine, store = _engine(
        make_state, announcer=_BrokenAnnouncer(),
        players=4, queue=[['p1', 'p2', 'p3', 'p4']],
    )
    announcement = engine.assign('2')
    assert announcement.court_name == 'Court B'
    assert engine.state.court('2').players == ['p1', 'p2', 'p3', 'p4']
    assert len(store.saved) == 1


def test_tick_reads_latest_state(make_state):
    engine, _ = _engine(make_state, players=8)
    timer = AutoAssignTimer(engine.auto_assign_tick, spawn=lambda *args: None)
    engine.auto_assign_timer = timer

    engine.append_entry(['p1', 'p2', 'p3', 'p4'])
    engine.schedule(1)

    result = timer.run_once()
    assert result.filled == 2
    assert engine.state.queue == []
    assert all(court.is_active for court in engine.state.courts)
    assert len(engine._announcer.announcements) == 2


def test_tick_skips_while_another_operation_holds_the_lock(make_state):
    engine, store = _engine(make_state, players=4, queue=[['p1', 'p2', 'p3', 'p4']])
    engine._lock.acquire()
    try:
        assert engine.auto_assign_tick() is None
    finally:
        engine._lock.release()
    assert store.saved == []
    assert engine.auto_assign_tick().filled == 1


def test_idle_tick_is_silent(make_state):
    engine, store = _engine(make_state, players=4)
    result = engine.auto_assign_tick()
    assert result.filled == 0
    assert store.saved == []
    assert engine._announcer.updates == []


def test_schedule_ai_without_strategy_falls_back(make_state):
    engine, _ = _engine(make_state, players=8)
    result = engine.schedule(2, 'ai')
    assert result['mode'] == 'normal'
    assert result['fallback_reason']
    assert len(engine.state.queue) == 2


class _CrashingStrategy:
    def suggest(self, eligible_players, history, round_count, queue_snapshot):
        raise RuntimeError('boom')


def test_schedule_ai_survives_a_crashing_strategy(make_state):
    engine = SessionEngine(
        'club-night', state=make_state(players=8), store=_RecordingStore(),
        strategy=_CrashingStrategy(), rng=random.Random(4),
    )
    result = engine.schedule(1, 'ai')
    assert result['mode'] == 'normal'
    assert 'boom' in result['fallback_reason']
    assert len(engine.state.queue) == 1


def test_reset_restores_configured_court_count(make_state):
    engine = SessionEngine('club-night', state=make_state(players=4), default_court_count=3)
    engine.reset()
    assert [c.name for c in engine.state.courts] == ['Court A', 'Court B', 'Court C']
    assert engine.state.players == []
    engine.reset(1)
    assert len(engine.state.courts) == 1


def test_resolution_gone_stale_before_confirmation_is_refused(make_state):
    engine, store = _engine(
        make_state, players=12,
        queue=[['p1', 'p5', 'p6', 'p7'], ['p8', 'p9', 'p10', 'p11']],
        courts={'1': ['p1', 'p2', 'p3', 'p4']},
    )
    shown = engine.propose_resolution()
    assert shown.replacements[0].replacement_id == 'p8'

    engine.swap_slot(1, 'p8', 'p12')
    before = engine.state
    with pytest.raises(StaleResolutionError):
        engine.apply_resolution('2', shown)
    assert engine.state is before
    assert len(store.saved) == 1
    assert engine._announcer.announcements == []

    announcement = engine.apply_resolution('2', engine.propose_resolution())
    assert engine.state.court('2').players == ['p12', 'p5', 'p6', 'p7']
    assert engine.state.queue == [['p1', 'p9', 'p10', 'p11']]
    assert engine._announcer.announcements == [announcement.message]


def test_snapshot_includes_derived_sets(make_state):
    engine, _ = _engine(
        make_state, players=8,
        queue=[['p5', 'p6', 'p7', 'p8']],
        courts={'1': ['p1', 'p2', 'p3', 'p4']},
    )
    snapshot = engine.snapshot()
    assert snapshot['session_key'] == 'club-night'
    assert snapshot['playing_ids'] == ['p1', 'p2', 'p3', 'p4']
    assert snapshot['queued_ids'] == ['p5', 'p6', 'p7', 'p8']
    assert len(snapshot['busy_ids']) == 8
    assert snapshot['auto_assign'] is None


class _ManualLoop:
    """Records spawned loops and lets a test step them by hand."""

    def __init__(self):
        self.spawned = []
        self.on_sleep = None

    def spawn(self, target, *args):
        self.spawned.append((target, args))

    def sleep(self, seconds):
        if self.on_sleep:
            self.on_sleep()


def test_timer_rearms_with_new_generation():
    loop = _ManualLoop()
    timer = AutoAssignTimer(lambda: None, interval=10, spawn=loop.spawn, sleep=loop.sleep)
    assert loop.spawned == []

    timer.configure(enabled=True)
    timer.configure(interval=30)
    assert [args for _, args in loop.spawned] == [(1, 10.0), (2, 30.0)]
    assert timer.to_dict() == {'enabled': True, 'interval_seconds': 30.0}

    timer.configure(enabled=False)
    assert len(loop.spawned) == 2
    assert not timer.is_current(2)


def test_stale_loop_exits_without_ticking():
    ticks = []
    loop = _ManualLoop()
    timer = AutoAssignTimer(lambda: ticks.append(1), spawn=loop.spawn, sleep=loop.sleep)
    timer.configure(enabled=True)
    timer.configure(enabled=True)

    stale_target, stale_args = loop.spawned[0]
    stale_target(*stale_args)
    assert ticks == []


def test_current_loop_ticks_until_disarmed():
    ticks = []
    loop = _ManualLoop()
    timer = AutoAssignTimer(lambda: ticks.append(1), spawn=loop.spawn, sleep=loop.sleep)
    timer.configure(enabled=True)

    sleeps = []

    def _count_sleeps():
        sleeps.append(1)
        if len(sleeps) == 3:
            timer.stop()

    loop.on_sleep = _count_sleeps
    target, args = loop.spawned[-1]
    target(*args)
    assert ticks == [1, 1]


def test_timer_survives_failing_tick_and_clamps_interval():
    def _explode():
        raise RuntimeError('boom')

    timer = AutoAssignTimer(_explode, interval=0.1, spawn=lambda *args: None)
    assert timer.interval == MIN_INTERVAL_SECONDS
    assert timer.run_once() is None


def test_timer_armed_at_creation_spawns_once():
    loop = _ManualLoop()
    timer = AutoAssignTimer(lambda: None, interval=5, enabled=True,
                            spawn=loop.spawn, sleep=loop.sleep)
    assert timer.enabled
    assert [args for _, args in loop.spawned] == [(1, 5.0)]

"""Tests for snapshot persistence."""
from datetime import datetime

from shuttle.engine.state import MatchHistoryRecord
from shuttle.models import SessionSnapshot
from shuttle.services.registry import SessionRegistry, is_valid_session_key
from shuttle.services.snapshot_store import SqlSnapshotStore


def test_save_and_load_round_trip(app, make_state):
    store = SqlSnapshotStore()
    state = make_state(
        players=6,
        queue=[['p5', 'p6', None, None]],
        courts={'2': ['p1', 'p2', 'p3', 'p4']},
        history=[MatchHistoryRecord(
            timestamp=datetime(2026, 3, 14, 18, 30),
            players=['p1', 'p3', 'p2', 'p4'],
            teams=(('p1', 'p3'), ('p2', 'p4')),
            duration_seconds=900,
            score=(21, 19),
        )],
    )
    state.games_counter = 1

    store.save('tuesday', state)
    loaded = store.load('tuesday')

    assert loaded.to_dict() == state.to_dict()
    assert loaded.court('2').start_time == datetime(2026, 3, 14, 19, 0)
    assert loaded.history[0].score == (21, 19)


def test_save_updates_existing_row(app, make_state):
    store = SqlSnapshotStore()
    store.save('tuesday', make_state(players=2))
    store.save('tuesday', make_state(players=5))

    assert SessionSnapshot.query.count() == 1
    assert len(store.load('tuesday').players) == 5


def test_load_missing_and_delete(app, make_state):
    store = SqlSnapshotStore()
    assert store.load('nobody') is None
    store.save('gone', make_state(players=1))
    store.delete('gone')
    assert store.load('gone') is None


def test_registry_restores_saved_session(app, make_state):
    SqlSnapshotStore().save('restored', make_state(players=3))
    registry = SessionRegistry(app, timer_factory=lambda tick, **kwargs: None)

    engine = registry.get('restored')
    assert len(engine.state.players) == 3
    assert registry.get('restored') is engine

    fresh = registry.get('brand-new')
    assert fresh.state.players == []
    assert [c.name for c in fresh.state.courts] == ['Court A', 'Court B']


def test_session_key_validation():
    assert is_valid_session_key('club_night-2026')
    assert not is_valid_session_key('')
    assert not is_valid_session_key('spaces are bad')
    assert not is_valid_session_key('x' * 121)

from datetime import datetime

import pytest
from shuttle.app import create_app, db
from shuttle.engine.state import Player, SessionState

MATCH_START = datetime(2026, 3, 14, 19, 0, 0)


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_state():
    """Build a SessionState from player specs, queued rounds and active courts.

    ``players`` is either a count (ids p1..pN, level 7) or a list of Player.
    ``courts`` maps a court id to the four ids playing there.
    """
    def _make(players=8, queue=None, courts=None, history=None):
        if isinstance(players, int):
            players = [Player(id=f'p{i}', name=f'Player {i}') for i in range(1, players + 1)]
        state = SessionState(players=list(players))
        state.queue = [list(entry) for entry in (queue or [])]
        state.history = list(history or [])
        for court_id, entry in (courts or {}).items():
            court = state.court(court_id)
            court.players = list(entry)
            court.is_active = True
            court.start_time = MATCH_START
        return state
    return _make

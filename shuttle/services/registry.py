"""Per-application registry of live session engines."""
import random
import re
import threading

from shuttle.engine.roster import reset_session
from shuttle.services.announcer import NullAnnouncer, SocketAnnouncer
from shuttle.services.auto_assign import AutoAssignTimer
from shuttle.services.session_engine import SessionEngine
from shuttle.services.snapshot_store import SqlSnapshotStore
from shuttle.services.suggestion import RemoteSuggestionStrategy

_SESSION_KEY_RE = re.compile(r'^[A-Za-z0-9_-]{1,120}$')


def is_valid_session_key(session_key):
    return bool(_SESSION_KEY_RE.match(str(session_key or '')))


class AppBoundStore:
    """Runs snapshot calls inside an app context so background ticks can persist."""

    def __init__(self, app, store):
        self.app = app
        self.store = store

    def load(self, session_key):
        with self.app.app_context():
            return self.store.load(session_key)

    def save(self, session_key, state):
        with self.app.app_context():
            self.store.save(session_key, state)


class SessionRegistry:
    def __init__(self, app, store=None, announcer=None, strategy=None, timer_factory=None):
        self.app = app
        self.store = AppBoundStore(app, store or SqlSnapshotStore())
        config = app.config
        if announcer is None:
            announcer = (
                SocketAnnouncer() if config.get('AUTO_BROADCAST_ENABLED', True) else NullAnnouncer()
            )
        self.announcer = announcer
        if strategy is None:
            strategy = RemoteSuggestionStrategy(
                config.get('SUGGESTION_API_URL'),
                config.get('SUGGESTION_API_KEY'),
                timeout=config.get('SUGGESTION_TIMEOUT_SECONDS', 20.0),
            )
        self.strategy = strategy
        self.timer_factory = timer_factory or AutoAssignTimer
        self._engines = {}
        self._lock = threading.Lock()

    def _new_rng(self):
        seed = self.app.config.get('SCHEDULER_SEED')
        return random.Random(seed) if seed is not None else random.Random()

    def get(self, session_key):
        with self._lock:
            engine = self._engines.get(session_key)
            if engine is not None:
                return engine
            court_count = self.app.config.get('DEFAULT_COURT_COUNT')
            state = self.store.load(session_key)
            if state is None:
                state = reset_session(court_count)
            engine = SessionEngine(
                session_key,
                state=state,
                store=self.store,
                announcer=self.announcer,
                strategy=self.strategy,
                rng=self._new_rng(),
                default_court_count=court_count,
            )
            engine.auto_assign_timer = self.timer_factory(
                engine.auto_assign_tick,
                interval=self.app.config.get('AUTO_ASSIGN_INTERVAL_SECONDS', 10.0),
                enabled=self.app.config.get('AUTO_ASSIGN_ENABLED', False),
            )
            self._engines[session_key] = engine
            return engine

    def shutdown(self):
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            engine.shutdown()

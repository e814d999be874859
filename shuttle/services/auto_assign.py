"""Recurring auto-assign timer.

Each configure() call bumps a generation number; a running loop exits as soon
as it wakes up under an older generation, so changing the interval or turning
the timer off never leaves two loops ticking the same session.
"""
import logging
import threading

from shuttle.app import socketio

logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 1.0


class AutoAssignTimer:
    def __init__(self, tick, interval=10.0, enabled=False, spawn=None, sleep=None):
        self._tick = tick
        self.interval = max(MIN_INTERVAL_SECONDS, float(interval))
        self.enabled = False
        self._generation = 0
        self._lock = threading.Lock()
        self._spawn = spawn or socketio.start_background_task
        self._sleep = sleep or socketio.sleep
        if enabled:
            self.configure(enabled=True)

    @property
    def generation(self):
        return self._generation

    def configure(self, enabled=None, interval=None):
        with self._lock:
            if interval is not None:
                self.interval = max(MIN_INTERVAL_SECONDS, float(interval))
            if enabled is not None:
                self.enabled = bool(enabled)
            self._generation += 1
            generation = self._generation
            if self.enabled:
                self._spawn(self._run, generation, self.interval)
        logger.info(
            'Auto-assign %s (interval %.1fs)',
            'armed' if self.enabled else 'disarmed', self.interval,
        )
        return self.to_dict()

    def stop(self):
        return self.configure(enabled=False)

    def is_current(self, generation):
        return generation == self._generation

    def _run(self, generation, interval):
        while True:
            self._sleep(interval)
            if not self.is_current(generation):
                return
            self.run_once()

    def run_once(self):
        try:
            return self._tick()
        except Exception:
            logger.exception('Auto-assign tick failed')
            return None

    def to_dict(self):
        return {'enabled': self.enabled, 'interval_seconds': self.interval}

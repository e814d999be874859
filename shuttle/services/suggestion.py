"""
Optional remote pairing suggestions.

The remote service receives the eligible players, the last 30 completed
matches, how many rounds are wanted and the current queue, and answers
``{"suggested_rounds": [[id, id, id, id], ...]}`` (first two ids are one
team). Anything else, including timeouts and missing credentials, surfaces as
ExternalStrategyUnavailable so the caller can fall back to local generation.

The call runs under the session lock, so ``timeout`` budgets the whole
exchange: the body is streamed and abandoned once the deadline passes.
"""
import json
import logging
import time

import requests

from shuttle.engine.errors import ExternalStrategyUnavailable, InvalidEntryError
from shuttle.engine.generator import validate_suggested_rounds

logger = logging.getLogger(__name__)

_HISTORY_WINDOW = 30
_CHUNK_SIZE = 8192


class RemoteSuggestionStrategy:
    def __init__(self, url, api_key='', timeout=20.0, session=None, clock=None):
        self.url = str(url or '').strip()
        self.api_key = str(api_key or '').strip()
        self.timeout = timeout
        self.http = session or requests
        self.clock = clock or time.monotonic

    @property
    def configured(self):
        return bool(self.url and self.api_key)

    def _payload(self, eligible_players, history, round_count, queue_snapshot):
        return {
            'round_count': round_count,
            'players': [p.to_dict() for p in eligible_players],
            'history': [record.to_dict() for record in history[-_HISTORY_WINDOW:]],
            'queue': [list(entry) for entry in queue_snapshot],
        }

    def _read_body(self, response, deadline):
        chunks = []
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            chunks.append(chunk)
            if self.clock() > deadline:
                raise ExternalStrategyUnavailable(
                    f'Suggestion service exceeded the {self.timeout}s time limit'
                )
        return b''.join(chunks)

    def suggest(self, eligible_players, history, round_count, queue_snapshot):
        if not self.configured:
            raise ExternalStrategyUnavailable('Suggestion service credential is missing')
        if len(eligible_players) < 4:
            return []

        deadline = self.clock() + self.timeout
        try:
            response = self.http.post(
                self.url,
                json=self._payload(eligible_players, history, round_count, queue_snapshot),
                headers={'Authorization': f'Bearer {self.api_key}'},
                timeout=(self.timeout, self.timeout),
                stream=True,
            )
        except requests.RequestException as exc:
            raise ExternalStrategyUnavailable(f'Suggestion service unreachable: {exc}')

        try:
            if response.status_code != 200:
                raise ExternalStrategyUnavailable(
                    f'Suggestion service answered {response.status_code}'
                )
            body = self._read_body(response, deadline)
        except requests.RequestException as exc:
            raise ExternalStrategyUnavailable(f'Suggestion service unreachable: {exc}')
        finally:
            response.close()

        try:
            data = json.loads(body)
        except ValueError:
            raise ExternalStrategyUnavailable('Suggestion service returned invalid JSON')
        if not isinstance(data, dict):
            raise ExternalStrategyUnavailable('Suggestion service returned an unexpected payload')
        return data.get('suggested_rounds')


def fetch_suggested_rounds(strategy, state, round_count):
    """Ask ``strategy`` for rounds and validate them against ``state``.

    Returns the cleaned entries; any failure is raised as ExternalStrategyUnavailable.
    """
    if strategy is None:
        raise ExternalStrategyUnavailable('No suggestion service configured')
    eligible = state.eligible_players()
    try:
        raw_rounds = strategy.suggest(
            eligible, list(state.history), round_count, [list(e) for e in state.queue],
        )
    except ExternalStrategyUnavailable:
        raise
    except Exception as exc:
        logger.exception('Suggestion strategy %s failed', type(strategy).__name__)
        raise ExternalStrategyUnavailable(f'Suggestion strategy failed: {exc}')
    try:
        return validate_suggested_rounds(
            state, raw_rounds, round_count, eligible_ids=[p.id for p in eligible],
        )
    except InvalidEntryError as exc:
        logger.warning('Discarding malformed suggestion response: %s', exc.message)
        raise ExternalStrategyUnavailable(f'Malformed suggestion response: {exc.message}')

"""Session state for court rotation.

The engine never mutates a SessionState it was handed. Every operation works
on ``state.clone()`` and returns the copy, so a failing operation leaves the
caller's state untouched and a successful one commits all of its steps at once.
"""
import copy
import string
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from shuttle.time_utils import isoformat_or_none, parse_iso_or_none

GENDERS = ('male', 'female', 'other')
MIN_LEVEL = 1
MAX_LEVEL = 15
DEFAULT_LEVEL = 7
DEFAULT_TARGET_GAMES = 6
SLOTS_PER_ENTRY = 4
DEFAULT_COURT_COUNT = 2


def new_id():
    return uuid.uuid4().hex


def clamp_level(level):
    return max(MIN_LEVEL, min(MAX_LEVEL, int(level)))


def court_name_for(position):
    """Letter-suffixed court name for a 0-based court position (A..Z, then numbers)."""
    letters = string.ascii_uppercase
    if position < len(letters):
        return f'Court {letters[position]}'
    return f'Court {position + 1}'


def blank_entry():
    return [None] * SLOTS_PER_ENTRY


def entry_players(entry):
    return [pid for pid in entry if pid]


def entry_teams(entry):
    return (entry[0], entry[1]), (entry[2], entry[3])


@dataclass
class Player:
    id: str
    name: str
    gender: str = 'male'
    level: int = DEFAULT_LEVEL
    games_played: int = 0
    target_games: int = DEFAULT_TARGET_GAMES
    is_paused: bool = False

    @property
    def effective_target(self):
        return self.target_games or DEFAULT_TARGET_GAMES

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name, 'gender': self.gender,
            'level': self.level, 'games_played': self.games_played,
            'target_games': self.target_games, 'is_paused': self.is_paused,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data['id']),
            name=str(data.get('name') or ''),
            gender=data.get('gender') if data.get('gender') in GENDERS else 'male',
            level=clamp_level(data.get('level', DEFAULT_LEVEL)),
            games_played=int(data.get('games_played') or 0),
            target_games=max(1, int(data.get('target_games') or DEFAULT_TARGET_GAMES)),
            is_paused=bool(data.get('is_paused', False)),
        )


@dataclass
class Court:
    id: str
    name: str
    players: List[Optional[str]] = field(default_factory=list)
    is_active: bool = False
    start_time: Optional[object] = None

    def clear(self):
        self.players = []
        self.is_active = False
        self.start_time = None

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name,
            'players': list(self.players), 'is_active': self.is_active,
            'start_time': isoformat_or_none(self.start_time),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data['id']),
            name=str(data.get('name') or ''),
            players=[pid or None for pid in (data.get('players') or [])],
            is_active=bool(data.get('is_active', False)),
            start_time=parse_iso_or_none(data.get('start_time')),
        )


@dataclass
class MatchHistoryRecord:
    timestamp: object
    players: List[str]
    teams: Tuple[Tuple[str, str], Tuple[str, str]]
    duration_seconds: Optional[int] = None
    score: Optional[Tuple[int, int]] = None

    def to_dict(self):
        return {
            'timestamp': isoformat_or_none(self.timestamp),
            'players': list(self.players),
            'teams': [list(self.teams[0]), list(self.teams[1])],
            'duration_seconds': self.duration_seconds,
            'score': list(self.score) if self.score is not None else None,
        }

    @classmethod
    def from_dict(cls, data):
        teams = data.get('teams') or [[], []]
        score = data.get('score')
        return cls(
            timestamp=parse_iso_or_none(data.get('timestamp')),
            players=list(data.get('players') or []),
            teams=(tuple(teams[0]), tuple(teams[1])),
            duration_seconds=data.get('duration_seconds'),
            score=tuple(score) if score is not None else None,
        )


def default_courts(count=DEFAULT_COURT_COUNT):
    return [Court(id=str(i + 1), name=court_name_for(i)) for i in range(count)]


@dataclass
class SessionState:
    players: List[Player] = field(default_factory=list)
    courts: List[Court] = field(default_factory=default_courts)
    queue: List[List[Optional[str]]] = field(default_factory=list)
    history: List[MatchHistoryRecord] = field(default_factory=list)
    games_counter: int = 0

    def clone(self):
        return copy.deepcopy(self)

    # ── lookups ──────────────────────────────────────────────────────────

    def player(self, player_id):
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def court(self, court_id):
        for court in self.courts:
            if court.id == court_id:
                return court
        return None

    def players_by_id(self):
        return {player.id: player for player in self.players}

    # ── derived sets ─────────────────────────────────────────────────────

    def playing_ids(self):
        return {
            pid for court in self.courts if court.is_active
            for pid in court.players if pid
        }

    def queued_ids(self):
        return {pid for entry in self.queue for pid in entry if pid}

    def busy_ids(self):
        return self.playing_ids() | self.queued_ids()

    def eligible_players(self):
        return [player for player in self.players if not player.is_paused]

    def player_names(self, player_ids):
        by_id = self.players_by_id()
        return [by_id[pid].name for pid in player_ids if pid and pid in by_id]

    def to_dict(self):
        return {
            'players': [p.to_dict() for p in self.players],
            'courts': [c.to_dict() for c in self.courts],
            'queue': [list(entry) for entry in self.queue],
            'history': [h.to_dict() for h in self.history],
            'games_counter': self.games_counter,
        }

    @classmethod
    def from_dict(cls, data):
        courts = data.get('courts')
        return cls(
            players=[Player.from_dict(p) for p in data.get('players') or []],
            courts=[Court.from_dict(c) for c in courts] if courts is not None else default_courts(),
            queue=[
                [pid or None for pid in (list(entry) + [None] * SLOTS_PER_ENTRY)[:SLOTS_PER_ENTRY]]
                for entry in data.get('queue') or []
            ],
            history=[MatchHistoryRecord.from_dict(h) for h in data.get('history') or []],
            games_counter=int(data.get('games_counter') or 0),
        )

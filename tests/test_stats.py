"""Tests for queue analysis and per-player pairing stats."""
import pytest
from shuttle.engine import stats
from shuttle.engine.errors import NotFoundError
from shuttle.engine.state import MatchHistoryRecord, Player


def _record(team_a, team_b):
    return MatchHistoryRecord(
        timestamp=None,
        players=list(team_a) + list(team_b),
        teams=(tuple(team_a), tuple(team_b)),
    )


def _state(make_state, history=(), queue=None, courts=None):
    levels = {'a': 9, 'b': 4, 'c': 7, 'd': 5, 'e': 6}
    players = [Player(id=pid, name=pid.upper(), level=lvl) for pid, lvl in levels.items()]
    return make_state(players=players, queue=queue, courts=courts, history=list(history))


def test_analyze_entry_reports_levels_and_repeats(make_state):
    state = _state(make_state, history=[_record(('a', 'b'), ('c', 'd'))])

    fresh = stats.analyze_entry(state, ['a', 'c', 'b', 'd'])
    assert fresh['team_levels'] == [16, 9]
    assert fresh['level_diff'] == 7
    assert fresh['partner_repeat'] is False
    assert fresh['opponent_repeat'] is False

    repeat = stats.analyze_entry(state, ['b', 'a', 'd', 'c'])
    assert repeat['partner_repeat'] is True
    assert repeat['opponent_repeat'] is True


def test_analyze_entry_tolerates_blank_slots(make_state):
    state = _state(make_state)
    result = stats.analyze_entry(state, ['a', None, None, None])
    assert result['team_levels'] == [9, 0]
    assert result['partner_repeat'] is False


def test_analysis_only_looks_at_recent_history(make_state):
    old = [_record(('a', 'b'), ('c', 'd'))]
    filler = [_record(('a', 'e'), ('c', 'b'))] * stats.ANALYSIS_HISTORY_WINDOW
    state = _state(make_state, history=old + filler)
    assert stats.analyze_entry(state, ['a', 'b', 'd', 'e'])['partner_repeat'] is False


def test_analyze_queue_tags_each_round(make_state):
    state = _state(make_state, queue=[['a', 'b', 'c', 'd'], ['e', 'a', 'b', 'c']])
    analysis = stats.analyze_queue(state)
    assert [item['queue_index'] for item in analysis] == [0, 1]
    assert analysis[1]['team_levels'] == [15, 11]


def test_player_stats_counts_partners_and_opponents(make_state):
    state = _state(
        make_state,
        history=[_record(('a', 'b'), ('c', 'd')), _record(('a', 'b'), ('c', 'e'))],
        queue=[['a', 'c', 'b', 'e']],
        courts={'1': ['a', 'd', 'b', 'c']},
    )
    result = stats.player_stats(state, 'a')

    assert result['assigned_matches'] == 2
    assert result['partners'] == [{'player_id': 'b', 'count': 2}]
    assert {row['player_id']: row['count'] for row in result['opponents']} == {
        'c': 2, 'd': 1, 'e': 1,
    }
    assert {row['player_id']: row['count'] for row in result['upcoming_partners']} == {
        'd': 1, 'c': 1,
    }
    assert {row['player_id']: row['count'] for row in result['upcoming_opponents']} == {
        'b': 2, 'c': 1, 'e': 1,
    }


def test_player_stats_unknown_player(make_state):
    with pytest.raises(NotFoundError):
        stats.player_stats(_state(make_state), 'zz')

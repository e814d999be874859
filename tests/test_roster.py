"""Tests for roster and court management."""
import pytest
from shuttle.engine import roster
from shuttle.engine.errors import (
    CourtBusyError, InvalidEntryError, NotFoundError, PlayerBusyError,
)


def test_add_player_normalizes_fields(make_state):
    state = make_state(players=0)
    next_state, player = roster.add_player(state, '  Mia  ', gender='Female', level=22, target_games=4)
    assert player.name == 'Mia'
    assert player.gender == 'female'
    assert player.level == 15
    assert player.target_games == 4
    assert player.games_played == 0
    assert not player.is_paused
    assert next_state.players == [player]
    assert state.players == []

    _, low = roster.add_player(state, 'Lee', level=-3)
    assert low.level == 1


@pytest.mark.parametrize('kwargs', [
    {'name': ''},
    {'name': 'Ana', 'gender': 'robot'},
    {'name': 'Ana', 'target_games': 0},
    {'name': 'Ana', 'target_games': 'many'},
    {'name': 'Ana', 'level': 'high'},
])
def test_add_player_rejects_bad_input(make_state, kwargs):
    with pytest.raises(InvalidEntryError):
        roster.add_player(make_state(players=0), **kwargs)


def test_bulk_add_is_all_or_nothing(make_state):
    state = make_state(players=0)
    next_state, added = roster.bulk_add_players(state, [
        {'name': 'Ana', 'gender': 'female', 'level': 9},
        {'name': 'Ben'},
    ])
    assert [p.name for p in added] == ['Ana', 'Ben']
    assert len(next_state.players) == 2

    with pytest.raises(InvalidEntryError):
        roster.bulk_add_players(state, [{'name': 'Cal'}, {'name': ''}])
    assert state.players == []


def test_update_player_edits_level_and_target_together(make_state):
    state = make_state(players=2)
    next_state, player = roster.update_player(state, 'p1', level=12, target_games=9)
    assert (player.level, player.target_games) == (12, 9)
    assert state.player('p1').level == 7

    with pytest.raises(InvalidEntryError):
        roster.update_player(state, 'p1', level=3, target_games=0)
    assert state.player('p1').level == 7
    with pytest.raises(NotFoundError):
        roster.update_player(state, 'ghost', level=3)


def test_toggle_pause_flips_flag(make_state):
    state = make_state(players=1)
    paused_state, player = roster.toggle_pause(state, 'p1')
    assert player.is_paused
    _, player = roster.toggle_pause(paused_state, 'p1')
    assert not player.is_paused


def test_delete_player_rejects_busy_players(make_state):
    state = make_state(
        players=9,
        queue=[['p5', 'p6', 'p7', 'p8']],
        courts={'1': ['p1', 'p2', 'p3', 'p4']},
    )
    for busy_id in ('p1', 'p6'):
        with pytest.raises(PlayerBusyError):
            roster.delete_player(state, busy_id)
    assert len(state.players) == 9

    next_state, _ = roster.delete_player(state, 'p9')
    assert next_state.player('p9') is None
    with pytest.raises(NotFoundError):
        roster.delete_player(state, 'ghost')


def test_court_management(make_state):
    state = make_state(players=4, courts={'1': ['p1', 'p2', 'p3', 'p4']})
    next_state, court = roster.add_court(state)
    assert court.name == 'Court C'
    assert len(next_state.courts) == 3

    _, named = roster.add_court(state, 'Show Court')
    assert named.name == 'Show Court'

    renamed_state, renamed = roster.rename_court(next_state, '2', '   ')
    assert renamed.name == 'Court B'
    _, renamed = roster.rename_court(renamed_state, '2', 'Back Court')
    assert renamed.name == 'Back Court'

    with pytest.raises(CourtBusyError):
        roster.remove_court(state, '1')
    removed_state, _ = roster.remove_court(state, '2')
    assert [c.id for c in removed_state.courts] == ['1']
    with pytest.raises(NotFoundError):
        roster.rename_court(state, '7', 'x')


def test_reset_session_restores_default_courts():
    state = roster.reset_session()
    assert [c.name for c in state.courts] == ['Court A', 'Court B']
    assert state.players == [] and state.queue == [] and state.history == []
    assert state.games_counter == 0

    assert len(roster.reset_session(4).courts) == 4

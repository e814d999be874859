"""Read-only views over a session: match analysis and per-player pairing stats."""
from collections import Counter

from shuttle.engine.errors import NotFoundError
from shuttle.engine.state import entry_teams

ANALYSIS_HISTORY_WINDOW = 15


def _team_level(team, players_by_id):
    return sum(players_by_id[pid].level for pid in team if pid and pid in players_by_id)


def analyze_entry(state, entry):
    players_by_id = state.players_by_id()
    team_a, team_b = entry_teams(entry)
    level_a = _team_level(team_a, players_by_id)
    level_b = _team_level(team_b, players_by_id)
    recent = state.history[-ANALYSIS_HISTORY_WINDOW:]

    partner_repeat = any(
        all(team) and set(team) == set(past_team)
        for record in recent
        for past_team in record.teams
        for team in (team_a, team_b)
    )

    def faced(x, y, record):
        first, second = (set(t) for t in record.teams)
        return (x in first and y in second) or (x in second and y in first)

    opponent_repeat = any(
        faced(entry[0], entry[2], record) and faced(entry[1], entry[3], record)
        for record in recent
    )
    return {
        'team_levels': [level_a, level_b],
        'level_diff': abs(level_a - level_b),
        'partner_repeat': partner_repeat,
        'opponent_repeat': opponent_repeat,
    }


def analyze_queue(state):
    return [
        dict(analyze_entry(state, entry), queue_index=idx)
        for idx, entry in enumerate(state.queue)
    ]


def _tally(player_id, teams_list):
    partners = Counter()
    opponents = Counter()
    for teams in teams_list:
        mine = next((t for t in teams if player_id in t), None)
        if mine is None:
            continue
        theirs = teams[1] if mine is teams[0] else teams[0]
        partners.update(pid for pid in mine if pid and pid != player_id)
        opponents.update(pid for pid in theirs if pid)
    return partners.most_common(), opponents.most_common()


def player_stats(state, player_id):
    if state.player(player_id) is None:
        raise NotFoundError('Player not found', player_id=player_id)

    completed = [record.teams for record in state.history if player_id in record.players]

    upcoming = [
        entry_teams(court.players)
        for court in state.courts
        if court.is_active and player_id in court.players and len(court.players) == 4
    ]
    upcoming.extend(entry_teams(entry) for entry in state.queue if player_id in entry)

    partners, opponents = _tally(player_id, completed)
    upcoming_partners, upcoming_opponents = _tally(player_id, upcoming)
    return {
        'player_id': player_id,
        'assigned_matches': len(upcoming),
        'partners': [{'player_id': pid, 'count': n} for pid, n in partners],
        'opponents': [{'player_id': pid, 'count': n} for pid, n in opponents],
        'upcoming_partners': [{'player_id': pid, 'count': n} for pid, n in upcoming_partners],
        'upcoming_opponents': [{'player_id': pid, 'count': n} for pid, n in upcoming_opponents],
    }

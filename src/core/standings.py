"""
Group standings computed from completed matches.
"""
from typing import Dict, List

from core.models import Match, Tournament

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1


def calculate_standings(group_teams: List[str], group_matches: List[Match]) -> List[Dict]:
    """
    Calculate the standings table for one group.

    Returns: [{'name': team, 'played': n, 'won': n, 'drawn': n, 'lost': n,
               'points': n, 'legs_for': n, 'legs_against': n, 'leg_diff': n}, ...]

    Ranking: points -> leg difference. Teams still level keep their group order.
    """
    team_stats = {}
    for team in group_teams:
        team_stats[team] = {
            'name': team,
            'played': 0,
            'won': 0,
            'drawn': 0,
            'lost': 0,
            'points': 0,
            'legs_for': 0,
            'legs_against': 0,
            'leg_diff': 0,
        }

    for match in group_matches:
        if not match.completed or match.score1 is None or match.score2 is None:
            continue
        if match.team1 not in team_stats or match.team2 not in team_stats:
            continue

        home = team_stats[match.team1]
        away = team_stats[match.team2]
        home['played'] += 1
        away['played'] += 1
        home['legs_for'] += match.score1
        home['legs_against'] += match.score2
        away['legs_for'] += match.score2
        away['legs_against'] += match.score1

        if match.score1 > match.score2:
            home['won'] += 1
            home['points'] += POINTS_FOR_WIN
            away['lost'] += 1
        elif match.score2 > match.score1:
            away['won'] += 1
            away['points'] += POINTS_FOR_WIN
            home['lost'] += 1
        else:
            home['drawn'] += 1
            away['drawn'] += 1
            home['points'] += POINTS_FOR_DRAW
            away['points'] += POINTS_FOR_DRAW

    for stats in team_stats.values():
        stats['leg_diff'] = stats['legs_for'] - stats['legs_against']

    # sorted() is stable: ties keep the group's input order
    return sorted(team_stats.values(), key=lambda s: (-s['points'], -s['leg_diff']))


def calculate_group_standings(tournament: Tournament) -> List[List[Dict]]:
    """Standings for every group, in group order."""
    return [
        calculate_standings(group, tournament.group_matches(group_index + 1))
        for group_index, group in enumerate(tournament.groups)
    ]


def group_stage_complete(tournament: Tournament) -> bool:
    return all(match.completed for match in tournament.matches)

"""
Single elimination bracket generation and winner propagation.
"""
import datetime
import logging
import math
from typing import Dict, List, Optional, Union

from core.errors import InsufficientData, InvalidInput, InvalidScore
from core.models import AdvancingTeam, Match
from core.scheduling import BASE_DATE, format_time, parse_time

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "Winner of Match "
ROUND_SPACING_MINUTES = 60


def placeholder(match_id: int) -> str:
    return f"{PLACEHOLDER_PREFIX}{match_id}"


def is_placeholder(team: Optional[str]) -> bool:
    return team is None or str(team).startswith(PLACEHOLDER_PREFIX)


def get_round_name(round_number: int, total_rounds: int) -> str:
    """Get the name of a round from its distance to the final."""
    rounds_from_final = total_rounds - round_number
    if rounds_from_final == 0:
        return "Final"
    elif rounds_from_final == 1:
        return "Semi-Finals"
    elif rounds_from_final == 2:
        return "Quarter-Finals"
    elif rounds_from_final == 3:
        return "Round of 16"
    elif rounds_from_final == 4:
        return "Round of 32"
    else:
        return f"Round {round_number}"


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_teams))


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_teams) - num_teams


def select_advancers(group_standings: List[List[Dict]], advance_count: int) -> List[AdvancingTeam]:
    """
    Take the top ``advance_count`` teams of every group.

    ``group_standings`` holds one sorted standings table per group, in group
    order. A group with fewer teams than ``advance_count`` sends all of them.
    """
    if advance_count is None or advance_count < 1:
        raise InvalidInput("At least one team per group must advance.")
    advancers = []
    for group_index, table in enumerate(group_standings):
        for position, entry in enumerate(table[:advance_count], start=1):
            advancers.append(AdvancingTeam(entry['name'], group_index + 1, position))
    return advancers


class KnockoutTimeModel:
    """
    Start times for knockout matches.

    Rounds are an hour apart and matches within a round follow each other by
    ``match_duration``. The first round starts at ``knockout_start_time`` when
    given, otherwise right after the group stage would end if it were played
    on a single board.
    """

    def __init__(self, start_time, match_duration, knockout_start_time=None, total_group_matches=0):
        if match_duration is None or match_duration <= 0:
            raise InvalidInput("Match duration must be positive.")
        self.start_time = start_time
        self.match_duration = match_duration
        self.knockout_start_time = knockout_start_time
        self.total_group_matches = total_group_matches

    def base_time(self) -> datetime.datetime:
        if self.knockout_start_time:
            return datetime.datetime.combine(BASE_DATE, parse_time(self.knockout_start_time))
        start = datetime.datetime.combine(BASE_DATE, parse_time(self.start_time))
        return start + datetime.timedelta(minutes=self.total_group_matches * self.match_duration)

    def match_time(self, round_number: int, index_in_round: int) -> str:
        offset = (round_number - 1) * ROUND_SPACING_MINUTES + index_in_round * self.match_duration
        return format_time(self.base_time() + datetime.timedelta(minutes=offset))


def seed_first_round(advancers: List[AdvancingTeam]) -> List[tuple]:
    """
    Pair advancing teams for the first round.

    Teams are ordered by (group, position) and the i-th team from the front
    meets the i-th team from the back, so group winners face lower finishers
    of other groups. The list is padded to the bracket size; a team facing
    padding gets a bye and appears as ``(team, None)``.

    Byes go to the front of the order and adjacent first-round slots feed
    the same second-round match, so the top two seeds are not split into
    opposite halves: with six advancers the two byes, G1P1 and G1P2, meet
    in round 2.
    """
    ordered = sorted(advancers, key=lambda t: (t.group, t.position))
    bracket_size = calculate_bracket_size(len(ordered))
    padded = [team.name for team in ordered] + [None] * (bracket_size - len(ordered))
    return [(padded[i], padded[bracket_size - 1 - i]) for i in range(bracket_size // 2)]


def build_bracket(advancers: List[AdvancingTeam], num_boards: int,
                  time_model: KnockoutTimeModel) -> List[Match]:
    """
    Build every knockout match, wired from the first round to the final.

    Later rounds start out with "Winner of Match {id}" placeholders; a team
    with a first-round bye is written straight into its second-round slot.
    Ids are dense and run round by round.
    """
    if len(advancers) < 2:
        raise InsufficientData("At least two teams are needed to create a knockout bracket.")
    if num_boards is None or num_boards < 1:
        raise InvalidInput("Invalid number of boards.")

    bracket_size = calculate_bracket_size(len(advancers))
    total_rounds = int(math.log2(bracket_size))
    matches = []

    def add_match(round_number, index_in_round, team1, team2):
        match = Match(
            id=len(matches) + 1,
            round=round_number,
            team1=team1,
            team2=team2,
            time=time_model.match_time(round_number, index_in_round),
            board=(index_in_round % num_boards) + 1,
        )
        matches.append(match)
        return match

    # Each slot of the current round holds a Match, or a team name on a bye
    slots: List[Union[Match, str]] = []
    for team1, team2 in seed_first_round(advancers):
        if team2 is None:
            slots.append(team1)
        else:
            slots.append(add_match(1, sum(1 for s in slots if isinstance(s, Match)), team1, team2))

    for round_number in range(2, total_rounds + 1):
        next_slots = []
        index_in_round = 0
        for i in range(0, len(slots), 2):
            feeders = slots[i:i + 2]
            teams = [placeholder(f.id) if isinstance(f, Match) else f for f in feeders]
            match = add_match(round_number, index_in_round, teams[0], teams[1])
            index_in_round += 1
            for position, feeder in zip(('team1', 'team2'), feeders):
                if isinstance(feeder, Match):
                    feeder.next_match_id = match.id
                    feeder.next_match_position = position
            next_slots.append(match)
        slots = next_slots

    logger.info("Created knockout bracket with %d teams, %d rounds, %d matches",
                len(advancers), total_rounds, len(matches))
    return matches


def _check_score(score):
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidScore(f"Score must be a whole number, got {score!r}.")
    if score < 0:
        raise InvalidScore("Scores cannot be negative.")


def _derive_winner(match: Match) -> Optional[str]:
    if match.score1 is None or match.score2 is None:
        return match.winner
    return match.team1 if match.score1 > match.score2 else match.team2


def record_result(matches: List[Match], match_id: int, score1: int, score2: int) -> List[Match]:
    """
    Record a score and return the updated matches; the input list is untouched.

    Knockout matches need a strict winner, which is then propagated up the
    bracket. Group matches may be drawn.
    """
    _check_score(score1)
    _check_score(score2)
    target = next((m for m in matches if m.id == match_id), None)
    if target is None:
        raise InvalidInput(f"Match {match_id} not found.")
    if target.is_knockout:
        if is_placeholder(target.team1) or is_placeholder(target.team2):
            raise InvalidInput(f"Teams for match {match_id} are not determined yet.")
        if score1 == score2:
            raise InvalidScore("Knockout matches cannot end in a tie. Please enter different scores.")

    updated = [m.copy() for m in matches]
    match = next(m for m in updated if m.id == match_id)
    match.score1 = score1
    match.score2 = score2
    match.completed = True
    if match.is_knockout:
        match.winner = _derive_winner(match)
        propagate_winner(updated, match.id, match.winner)
    return updated


def propagate_winner(matches: List[Match], completed_match_id: int, winner: str) -> List[Match]:
    """
    Write ``winner`` into the slot its match feeds, in place.

    A downstream match that was already played gets its winner re-derived
    from its scores and pushed further up, until the final is reached.
    """
    by_id = {m.id: m for m in matches}
    pending = [(completed_match_id, winner)]
    visited = set()
    while pending:
        match_id, team = pending.pop()
        source = by_id.get(match_id)
        if source is None or source.next_match_id is None or match_id in visited:
            continue
        visited.add(match_id)

        target = by_id.get(source.next_match_id)
        if target is None:
            logger.warning("Match %s feeds unknown match %s", match_id, source.next_match_id)
            continue
        if source.next_match_position == 'team1':
            target.team1 = team
        elif source.next_match_position == 'team2':
            target.team2 = team

        if target.completed:
            target.winner = _derive_winner(target)
            pending.append((target.id, target.winner))
    return matches


def group_by_round(matches: List[Match]) -> List[Dict]:
    """Knockout matches grouped by round: [{'round', 'name', 'matches'}, ...]."""
    rounds = sorted({m.round for m in matches if m.round is not None})
    if not rounds:
        return []
    total_rounds = rounds[-1]
    return [
        {
            'round': round_number,
            'name': get_round_name(round_number, total_rounds),
            'matches': sorted((m for m in matches if m.round == round_number), key=lambda m: m.id),
        }
        for round_number in rounds
    ]


def champion(matches: List[Match]) -> Optional[str]:
    """Winner of the final, once it has been played."""
    finals = [m for m in matches if m.is_knockout and m.next_match_id is None]
    if not finals:
        return None
    final = max(finals, key=lambda m: m.round)
    return final.winner if final.completed else None

"""
Group stage formats: splitting a roster into groups and round-robin pairing.
"""
import logging
import random
from itertools import combinations
from typing import List, Optional

from core.errors import InvalidInput
from core.models import UnscheduledMatch

logger = logging.getLogger(__name__)


def partition_into_groups(teams: List[str], num_groups: int, shuffle: bool = True,
                          rng: Optional[random.Random] = None) -> List[List[str]]:
    """
    Distribute teams across groups as evenly as possible.

    The first ``len(teams) % num_groups`` groups get one extra team. When
    ``shuffle`` is set the assignment order is randomised; pass ``rng`` for a
    reproducible draw.
    """
    if not teams:
        raise InvalidInput("At least one team is required to create groups.")
    if num_groups is None or num_groups < 1:
        raise InvalidInput("Invalid number of groups.")
    if num_groups > len(teams):
        raise InvalidInput(f"Cannot split {len(teams)} teams into {num_groups} groups.")
    if len(set(teams)) != len(teams):
        raise InvalidInput("Team names must be unique.")

    ordered = list(teams)
    if shuffle:
        (rng or random).shuffle(ordered)

    base, remainder = divmod(len(ordered), num_groups)
    groups = []
    index = 0
    for group_index in range(num_groups):
        size = base + 1 if group_index < remainder else base
        groups.append(ordered[index:index + size])
        index += size
    return groups


def round_robin(teams: List[str], group: Optional[int] = None) -> List[UnscheduledMatch]:
    """Every team against every other team exactly once."""
    return [UnscheduledMatch(team1, team2, group) for team1, team2 in combinations(teams, 2)]


def generate_group_matches(groups: List[List[str]]) -> List[List[UnscheduledMatch]]:
    """Round-robin pairings for each group, tagged with the 1-based group number."""
    groups_of_matches = []
    for group_index, group in enumerate(groups):
        if len(group) < 2:
            logger.warning("Group %d has fewer than 2 teams (%s), skipping match generation",
                           group_index + 1, group)
            groups_of_matches.append([])
            continue
        groups_of_matches.append(round_robin(group, group=group_index + 1))
    return groups_of_matches

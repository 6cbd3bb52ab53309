"""
Unit tests for group partitioning and round-robin pairing.
"""
import pytest
import random
import sys
import os
from itertools import combinations

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.errors import InvalidInput
from core.formats import partition_into_groups, round_robin, generate_group_matches


class TestPartitionIntoGroups:
    """Tests for splitting a roster into groups."""

    @pytest.mark.parametrize("num_teams,num_groups", [(2, 1), (4, 2), (7, 2), (10, 3), (11, 4), (5, 5)])
    def test_sizes_differ_by_at_most_one(self, num_teams, num_groups):
        teams = [f"T{i}" for i in range(num_teams)]
        groups = partition_into_groups(teams, num_groups, rng=random.Random(1))

        assert len(groups) == num_groups
        sizes = [len(g) for g in groups]
        assert max(sizes) - min(sizes) <= 1

    def test_every_team_placed_once(self):
        teams = [f"T{i}" for i in range(13)]
        groups = partition_into_groups(teams, 4, rng=random.Random(3))

        placed = [team for group in groups for team in group]
        assert len(placed) == len(teams)
        assert set(placed) == set(teams)

    def test_larger_groups_come_first(self):
        """The first n % g groups receive the extra team."""
        teams = [f"T{i}" for i in range(10)]
        groups = partition_into_groups(teams, 4, shuffle=False)

        assert [len(g) for g in groups] == [3, 3, 2, 2]

    def test_no_shuffle_keeps_input_order(self):
        groups = partition_into_groups(["A", "B", "C", "D", "E"], 2, shuffle=False)
        assert groups == [["A", "B", "C"], ["D", "E"]]

    def test_seeded_rng_is_reproducible(self):
        teams = [f"T{i}" for i in range(8)]
        first = partition_into_groups(teams, 2, rng=random.Random(42))
        second = partition_into_groups(teams, 2, rng=random.Random(42))
        assert first == second

    def test_does_not_mutate_input(self):
        teams = ["A", "B", "C", "D"]
        partition_into_groups(teams, 2, rng=random.Random(5))
        assert teams == ["A", "B", "C", "D"]

    def test_empty_teams_rejected(self):
        with pytest.raises(InvalidInput):
            partition_into_groups([], 2)

    def test_zero_groups_rejected(self):
        with pytest.raises(InvalidInput):
            partition_into_groups(["A", "B"], 0)

    def test_more_groups_than_teams_rejected(self):
        with pytest.raises(InvalidInput):
            partition_into_groups(["A", "B"], 3)

    def test_duplicate_names_rejected(self):
        with pytest.raises(InvalidInput):
            partition_into_groups(["A", "A", "B"], 1)


class TestRoundRobin:
    """Tests for round-robin pairing."""

    @pytest.mark.parametrize("size", [2, 3, 4, 5, 8])
    def test_pair_count(self, size):
        teams = [f"T{i}" for i in range(size)]
        assert len(round_robin(teams)) == size * (size - 1) // 2

    def test_every_pair_exactly_once(self):
        teams = ["A", "B", "C", "D", "E"]
        pairs = [frozenset(m.teams()) for m in round_robin(teams)]

        assert len(pairs) == len(set(pairs))
        assert set(pairs) == {frozenset(p) for p in combinations(teams, 2)}

    def test_no_self_pairs(self):
        for match in round_robin(["A", "B", "C"]):
            assert match.team1 != match.team2

    def test_single_team_has_no_pairs(self):
        assert round_robin(["A"]) == []

    def test_group_number_is_tagged(self):
        assert all(m.group == 2 for m in round_robin(["A", "B", "C"], group=2))


class TestGenerateGroupMatches:
    """Tests for per-group match generation."""

    def test_one_list_per_group(self, two_groups):
        groups_of_matches = generate_group_matches(two_groups)

        assert len(groups_of_matches) == 2
        assert [len(g) for g in groups_of_matches] == [6, 6]
        assert {m.group for m in groups_of_matches[0]} == {1}
        assert {m.group for m in groups_of_matches[1]} == {2}

    def test_undersized_group_contributes_no_matches(self):
        groups_of_matches = generate_group_matches([["A", "B", "C"], ["D"]])

        assert len(groups_of_matches[0]) == 3
        assert groups_of_matches[1] == []

"""
Unit tests for time and board allocation.
"""
import pytest
import sys
import os
from collections import defaultdict

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.errors import InvalidInput
from core.formats import generate_group_matches, round_robin, partition_into_groups
from core.models import Match, UnscheduledMatch
from core.scheduling import (
    BoardScheduler,
    add_minutes,
    knockout_start_after,
    parse_time,
    schedule_matches,
    team_schedule,
)


def assert_no_conflicts(matches, num_boards):
    """No board or team used twice in the same slot."""
    by_time = defaultdict(list)
    for match in matches:
        by_time[match.time].append(match)
    for time, slot_matches in by_time.items():
        boards = [m.board for m in slot_matches]
        assert len(boards) == len(set(boards)), f"Board reused at {time}"
        assert all(1 <= b <= num_boards for b in boards)
        teams = [t for m in slot_matches for t in (m.team1, m.team2)]
        assert len(teams) == len(set(teams)), f"Team double-booked at {time}"


class TestTimeHelpers:
    """Tests for HH:MM helpers."""

    def test_parse_time(self):
        time_obj = parse_time("14:30")
        assert time_obj.hour == 14
        assert time_obj.minute == 30

    def test_parse_time_invalid(self):
        with pytest.raises(InvalidInput):
            parse_time("25:99")

    def test_add_minutes(self):
        assert add_minutes("09:00", 75) == "10:15"

    def test_add_minutes_wraps_midnight(self):
        assert add_minutes("23:50", 20) == "00:10"


class TestScheduleFourTeams:
    """4 teams, 1 group, 1 board, starting 10:00 with 10 minute matches."""

    @pytest.fixture
    def schedule(self, four_teams):
        return schedule_matches([round_robin(four_teams, group=1)], 1, "10:00", 10)

    def test_all_six_matches_scheduled(self, schedule):
        assert len(schedule) == 6

    def test_starts_at_start_time(self, schedule):
        assert schedule[0].time == "10:00"
        assert [m.time for m in schedule] == ["10:00", "10:10", "10:20", "10:30", "10:40", "10:50"]

    def test_single_board(self, schedule):
        assert all(m.board == 1 for m in schedule)

    def test_no_concurrent_team(self, schedule):
        assert_no_conflicts(schedule, 1)

    def test_most_rested_pair_goes_next(self, schedule):
        """After A-B, the fresh pair C-D is preferred over A-C."""
        pairs = [(m.team1, m.team2) for m in schedule]
        assert pairs[0] == ("A", "B")
        assert pairs[1] == ("C", "D")

    def test_ids_follow_order(self, schedule):
        assert [m.id for m in schedule] == [1, 2, 3, 4, 5, 6]

    def test_scores_start_empty(self, schedule):
        for match in schedule:
            assert match.score1 is None
            assert match.score2 is None
            assert match.completed is False
            assert match.group == 1


class TestScheduleMultipleGroups:
    """Tests for interleaving groups across boards."""

    def test_two_groups_share_every_slot(self, two_groups):
        schedule = schedule_matches(generate_group_matches(two_groups), 2, "09:00", 15)

        assert len(schedule) == 12
        by_time = defaultdict(set)
        for match in schedule:
            by_time[match.time].add(match.group)
        assert len(by_time) == 6
        assert all(groups == {1, 2} for groups in by_time.values())

    def test_one_group_fills_two_boards(self, four_teams):
        schedule = schedule_matches([round_robin(four_teams, group=1)], 2, "09:00", 15)

        assert len(schedule) == 6
        assert len({m.time for m in schedule}) == 3
        assert_no_conflicts(schedule, 2)

    @pytest.mark.parametrize("num_teams,num_groups,num_boards", [
        (10, 3, 3), (12, 4, 2), (9, 2, 4), (16, 4, 4), (7, 1, 3), (5, 2, 1),
    ])
    def test_no_conflicts_and_complete(self, num_teams, num_groups, num_boards):
        teams = [f"T{i}" for i in range(num_teams)]
        groups = partition_into_groups(teams, num_groups, shuffle=False)
        schedule = schedule_matches(generate_group_matches(groups), num_boards, "09:00", 20)

        expected = sum(len(g) * (len(g) - 1) // 2 for g in groups)
        assert len(schedule) == expected
        assert_no_conflicts(schedule, num_boards)
        pairs = {frozenset((m.team1, m.team2)) for m in schedule}
        assert len(pairs) == expected

    def test_ordered_by_time_then_board(self, two_groups):
        schedule = schedule_matches(generate_group_matches(two_groups), 2, "09:00", 15)
        keys = [(parse_time(m.time), m.board) for m in schedule]
        assert keys == sorted(keys)
        assert [m.id for m in schedule] == list(range(1, 13))

    def test_crossing_midnight_keeps_play_order(self):
        schedule = schedule_matches([round_robin(["A", "B", "C"], group=1)], 1, "23:50", 10)
        assert [m.time for m in schedule] == ["23:50", "00:00", "00:10"]
        assert [m.id for m in schedule] == [1, 2, 3]

    def test_empty_input(self):
        assert schedule_matches([], 2, "09:00", 15) == []
        assert schedule_matches([[], []], 2, "09:00", 15) == []


class TestSchedulerValidation:
    """Tests for rejected scheduler configuration."""

    def test_zero_boards(self):
        with pytest.raises(InvalidInput):
            BoardScheduler(0, "09:00", 15)

    def test_non_positive_duration(self):
        with pytest.raises(InvalidInput):
            BoardScheduler(1, "09:00", 0)

    def test_bad_start_time(self):
        with pytest.raises(InvalidInput):
            BoardScheduler(1, "nine", 15)

    def test_self_pairing(self):
        with pytest.raises(InvalidInput):
            schedule_matches([[UnscheduledMatch("A", "A", 1)]], 1, "09:00", 15)


class TestKnockoutStartAfter:
    """Tests for the default knockout start time."""

    def test_thirty_minutes_after_last_match(self, four_teams):
        schedule = schedule_matches([round_robin(four_teams, group=1)], 1, "10:00", 10)
        # Last match 10:50-11:00, plus a 30 minute break
        assert knockout_start_after(schedule, 10) == "11:30"

    def test_no_matches(self):
        assert knockout_start_after([], 10) is None


class TestTeamSchedule:
    """Tests for a single team's schedule."""

    def test_lists_opponents_in_order(self):
        matches = [
            Match(id=1, group=1, team1="A", team2="B", time="10:00", board=1,
                  score1=3, score2=1, completed=True),
            Match(id=2, group=1, team1="C", team2="A", time="10:10", board=1,
                  score1=2, score2=3, completed=True),
            Match(id=3, group=1, team1="B", team2="C", time="10:20", board=1),
            Match(id=4, group=1, team1="A", team2="D", time="10:30", board=2),
        ]

        schedule = team_schedule("A", matches)

        assert [s['opponent'] for s in schedule] == ["B", "C", "D"]
        assert schedule[0]['result'] == "3-1"
        assert schedule[1]['result'] == "3-2"
        assert schedule[2]['result'] is None
        assert schedule[2]['board'] == 2

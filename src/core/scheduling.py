"""
Time and board allocation for group stage matches.
"""
import datetime
import logging
from typing import Dict, List, Optional

from core.errors import InvalidInput
from core.models import Match, UnscheduledMatch

logger = logging.getLogger(__name__)

BASE_DATE = datetime.date(2023, 1, 1)
KNOCKOUT_GAP_MINUTES = 30


def parse_time(time_str: str) -> datetime.time:
    """Parse an ``HH:MM`` 24-hour string."""
    try:
        return datetime.datetime.strptime(str(time_str).strip(), '%H:%M').time()
    except ValueError:
        raise InvalidInput(f"Invalid time '{time_str}', expected HH:MM.")


def format_time(dt: datetime.datetime) -> str:
    return dt.strftime('%H:%M')


def add_minutes(time_str: str, minutes: int) -> str:
    """Shift an ``HH:MM`` time by a number of minutes, wrapping past midnight."""
    start = datetime.datetime.combine(BASE_DATE, parse_time(time_str))
    return format_time(start + datetime.timedelta(minutes=minutes))


class BoardScheduler:
    """
    Assigns round-robin matches to time slots and boards.

    Time advances in slots of ``match_duration`` minutes. Each slot holds at
    most ``num_boards`` matches and no team plays twice in the same slot. When
    several matches could take the next board, the one whose teams have rested
    longest wins, so a team's matches are spread out instead of played
    back-to-back.
    """

    def __init__(self, num_boards, start_time, match_duration):
        if num_boards is None or num_boards < 1:
            raise InvalidInput("Invalid number of boards.")
        if match_duration is None or match_duration <= 0:
            raise InvalidInput("Match duration must be positive.")
        self.num_boards = num_boards
        self.start_time = start_time
        self.match_duration = match_duration
        self._start_dt = datetime.datetime.combine(BASE_DATE, parse_time(start_time))

    def slot_time(self, slot: int) -> str:
        return format_time(self._start_dt + datetime.timedelta(minutes=slot * self.match_duration))

    @staticmethod
    def _rest_score(match, slot, last_played):
        # Teams that have not played yet count as last playing in slot -1
        return min(slot - last_played.get(match.team1, -1),
                   slot - last_played.get(match.team2, -1))

    def _most_rested(self, candidates, slot, last_played):
        return max(candidates, key=lambda m: self._rest_score(m, slot, last_played))

    def schedule(self, groups_of_matches: List[List[UnscheduledMatch]]) -> List[Match]:
        for group_matches in groups_of_matches:
            for match in group_matches:
                if match.team1 == match.team2:
                    raise InvalidInput(f"Team '{match.team1}' cannot play itself.")

        pending = [list(group_matches) for group_matches in groups_of_matches]
        num_groups = len(pending)
        last_played: Dict[str, int] = {}
        placed = []  # (slot, board, UnscheduledMatch)
        slot = 0
        block_start = 0

        while any(pending):
            busy = set()
            board = 0

            def is_free(match):
                return match.team1 not in busy and match.team2 not in busy

            def place(match, group_index):
                nonlocal board
                board += 1
                busy.update(match.teams())
                last_played[match.team1] = slot
                last_played[match.team2] = slot
                pending[group_index].remove(match)
                placed.append((slot, board, match))
                logger.debug("Scheduled %s vs %s on board %d at %s",
                             match.team1, match.team2, board, self.slot_time(slot))

            # First pass: one match from each group of the current block
            for offset in range(self.num_boards):
                if board >= self.num_boards:
                    break
                group_index = (block_start + offset) % num_groups
                candidates = [m for m in pending[group_index] if is_free(m)]
                if candidates:
                    place(self._most_rested(candidates, slot, last_played), group_index)

            # Second pass: fill idle boards, next block's groups first, then any group
            if board < self.num_boards:
                next_block = (block_start + self.num_boards) % num_groups
                preferred = []
                for offset in range(self.num_boards):
                    group_index = (next_block + offset) % num_groups
                    if group_index not in preferred:
                        preferred.append(group_index)
                order = preferred + [g for g in range(num_groups) if g not in preferred]

                while board < self.num_boards:
                    candidates = [(m, g) for g in order for m in pending[g] if is_free(m)]
                    if not candidates:
                        break
                    match, group_index = max(
                        candidates, key=lambda c: self._rest_score(c[0], slot, last_played))
                    place(match, group_index)

            block_start = (block_start + self.num_boards) % num_groups
            slot += 1

        placed.sort(key=lambda p: (p[0], p[1]))
        return [
            Match(
                id=index,
                group=match.group,
                team1=match.team1,
                team2=match.team2,
                time=self.slot_time(match_slot),
                board=match_board,
            )
            for index, (match_slot, match_board, match) in enumerate(placed, start=1)
        ]


def schedule_matches(groups_of_matches, num_boards, start_time, match_duration) -> List[Match]:
    """Schedule every group's pairings; returns matches ordered by (time, board) with ids 1..N."""
    return BoardScheduler(num_boards, start_time, match_duration).schedule(groups_of_matches)


def knockout_start_after(matches: List[Match], match_duration: int,
                         gap_minutes: int = KNOCKOUT_GAP_MINUTES) -> Optional[str]:
    """Knockout start time: ``gap_minutes`` after the last group match ends."""
    if not matches:
        return None
    # ids follow play order
    last_match = max(matches, key=lambda m: m.id)
    return add_minutes(last_match.time, match_duration + gap_minutes)


def team_schedule(team: str, matches: List[Match]) -> List[Dict]:
    """A team's matches in play order, with the result from the team's point of view."""
    schedule = []
    for match in sorted(matches, key=lambda m: m.id):
        if not match.has_team(team):
            continue
        own_first = match.team1 == team
        result = None
        if match.completed:
            if own_first:
                result = f"{match.score1}-{match.score2}"
            else:
                result = f"{match.score2}-{match.score1}"
        schedule.append({
            'time': match.time,
            'opponent': match.team2 if own_first else match.team1,
            'board': match.board,
            'completed': match.completed,
            'result': result,
        })
    return schedule

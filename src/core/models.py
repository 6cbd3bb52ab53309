import logging

logger = logging.getLogger(__name__)

MATCH_FIELDS = (
    'id', 'group', 'round', 'team1', 'team2', 'time', 'board',
    'score1', 'score2', 'completed', 'winner', 'next_match_id', 'next_match_position',
)


class UnscheduledMatch:
    def __init__(self, team1, team2, group=None):
        self.team1 = team1
        self.team2 = team2
        self.group = group

    def teams(self):
        return (self.team1, self.team2)

    def __eq__(self, other):
        if not isinstance(other, UnscheduledMatch):
            return NotImplemented
        return (self.team1, self.team2, self.group) == (other.team1, other.team2, other.group)

    def __repr__(self):
        return f"UnscheduledMatch(team1={self.team1}, team2={self.team2}, group={self.group})"


class Match:
    def __init__(self, id, team1, team2, time, board, group=None, round=None,
                 score1=None, score2=None, completed=False, winner=None,
                 next_match_id=None, next_match_position=None):
        self.id = id
        self.group = group  # Group stage only, 1-based
        self.round = round  # Knockout only, 1-based
        self.team1 = team1
        self.team2 = team2
        self.time = time
        self.board = board
        self.score1 = score1
        self.score2 = score2
        self.completed = completed
        self.winner = winner
        self.next_match_id = next_match_id
        self.next_match_position = next_match_position

    @property
    def is_knockout(self):
        return self.round is not None

    def has_team(self, name):
        return self.team1 == name or self.team2 == name

    def copy(self):
        return Match.from_dict(self.to_dict())

    def to_dict(self):
        return {field: getattr(self, field) for field in MATCH_FIELDS}

    @classmethod
    def from_dict(cls, data):
        values = {field: data.get(field) for field in MATCH_FIELDS}
        values['completed'] = bool(values['completed'])
        return cls(**values)

    def __eq__(self, other):
        if not isinstance(other, Match):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Match(id={self.id}, team1={self.team1}, team2={self.team2}, "
                f"time={self.time}, board={self.board}, group={self.group}, round={self.round})")


class Tournament:
    """Group stage: the groups and their scheduled matches."""

    def __init__(self, groups=None, matches=None):
        self.groups = groups if groups else []
        self.matches = matches if matches else []

    def group_matches(self, group_number):
        return [m for m in self.matches if m.group == group_number]

    def find_match(self, match_id):
        for match in self.matches:
            if match.id == match_id:
                return match
        return None

    def copy(self):
        return Tournament(
            groups=[list(group) for group in self.groups],
            matches=[m.copy() for m in self.matches],
        )

    def to_dict(self):
        return {
            'groups': [list(group) for group in self.groups],
            'matches': [m.to_dict() for m in self.matches],
        }

    @classmethod
    def from_dict(cls, data):
        """Load a stored tournament, replacing a missing or corrupt section with an empty list."""
        data = data or {}
        groups = data.get('groups')
        if not isinstance(groups, list):
            logger.warning("Fixing tournament structure: adding empty groups list")
            groups = []
        matches = data.get('matches')
        if not isinstance(matches, list):
            logger.warning("Fixing tournament structure: adding empty matches list")
            matches = []
        return cls(
            groups=[list(group) for group in groups if isinstance(group, list)],
            matches=[Match.from_dict(m) for m in matches if isinstance(m, dict)],
        )

    def __eq__(self, other):
        if not isinstance(other, Tournament):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"Tournament(groups={self.groups}, matches={len(self.matches)})"


class AdvancingTeam:
    def __init__(self, name, group, position):
        self.name = name
        self.group = group  # 1-based group number
        self.position = position  # 1-based rank within its group

    def to_dict(self):
        return {'name': self.name, 'group': self.group, 'position': self.position}

    def __eq__(self, other):
        if not isinstance(other, AdvancingTeam):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"AdvancingTeam(name={self.name}, group={self.group}, position={self.position})"

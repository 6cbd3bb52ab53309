"""
Tournament state: settings, group stage and knockout stage, composed by
TournamentManager.

Every mutating call validates its input before touching state, so a
rejected action leaves the previous state unchanged.
"""
import logging
import random
from typing import Dict, List, Optional

from core.elimination import (
    PLACEHOLDER_PREFIX,
    KnockoutTimeModel,
    build_bracket,
    champion,
    group_by_round,
    is_placeholder,
    record_result,
    select_advancers,
)
from core.errors import InsufficientData, InvalidInput
from core.formats import generate_group_matches, partition_into_groups
from core.models import Match, Tournament
from core.scheduling import knockout_start_after, parse_time, schedule_matches, team_schedule
from core.standings import calculate_group_standings, group_stage_complete

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    'tournament_name': 'Dart Tournament Scheduler',
    'num_teams': 8,
    'num_boards': 2,
    'num_groups': 2,
    'match_duration': 15,
    'start_time': '09:00',
    'teams_advancing': 2,
}

INT_SETTINGS = ('num_teams', 'num_boards', 'num_groups', 'match_duration', 'teams_advancing')


def default_team_names(num_teams: int) -> List[str]:
    return [f"{i}. Team {i}" for i in range(1, num_teams + 1)]


def _check_team_name(name: str):
    if not name:
        raise InvalidInput("Team names cannot be empty.")
    # Reserved for unresolved bracket slots
    if is_placeholder(name):
        raise InvalidInput(f'Team names cannot start with "{PLACEHOLDER_PREFIX.strip()}".')


class Settings:
    def __init__(self, **values):
        merged = dict(DEFAULT_SETTINGS)
        merged.update({k: v for k, v in values.items() if k in DEFAULT_SETTINGS})
        for key, value in merged.items():
            setattr(self, key, value)

    @staticmethod
    def _validate(values: Dict) -> Dict:
        cleaned = {}
        for key, value in values.items():
            if key not in DEFAULT_SETTINGS:
                raise InvalidInput(f"Unknown setting '{key}'.")
            if key in INT_SETTINGS:
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    raise InvalidInput(f"Setting '{key}' must be a whole number.")
                if value < 1:
                    raise InvalidInput(f"Setting '{key}' must be at least 1.")
            elif key == 'start_time':
                value = parse_time(value).strftime('%H:%M')
            else:
                value = str(value).strip()
            cleaned[key] = value
        return cleaned

    def update(self, **values):
        for key, value in self._validate(values).items():
            setattr(self, key, value)

    def reset(self):
        for key, value in DEFAULT_SETTINGS.items():
            setattr(self, key, value)

    def to_dict(self):
        return {key: getattr(self, key) for key in DEFAULT_SETTINGS}

    @classmethod
    def from_dict(cls, data):
        """Stored settings over the defaults; an invalid stored value falls back to its default."""
        values = {}
        for key, value in (data or {}).items():
            if key not in DEFAULT_SETTINGS:
                continue
            try:
                values.update(cls._validate({key: value}))
            except InvalidInput as e:
                logger.warning("Ignoring stored setting %s=%r: %s", key, value, e)
        return cls(**values)

    def __repr__(self):
        return f"Settings({self.to_dict()})"


class GroupStage:
    def __init__(self, tournament: Optional[Tournament] = None, knockout_start_time: Optional[str] = None):
        self.tournament = tournament
        self.knockout_start_time = knockout_start_time

    def generate(self, team_names, num_groups, num_boards, start_time, match_duration, rng=None):
        if not team_names or len(team_names) < 2:
            raise InvalidInput("There are not enough teams to generate a tournament.")
        for name in team_names:
            _check_team_name(name)
        groups = partition_into_groups(team_names, num_groups, rng=rng)
        matches = schedule_matches(generate_group_matches(groups), num_boards, start_time, match_duration)
        self.tournament = Tournament(groups=groups, matches=matches)
        self.knockout_start_time = knockout_start_after(matches, match_duration)
        logger.info("Generated tournament with %d teams, %d groups, %d boards and %d matches",
                    len(team_names), num_groups, num_boards, len(matches))
        return self.tournament

    def _require_tournament(self) -> Tournament:
        if self.tournament is None:
            raise InvalidInput("No tournament has been generated.")
        return self.tournament

    def record_score(self, match_id, score1, score2):
        tournament = self._require_tournament()
        tournament.matches = record_result(tournament.matches, match_id, score1, score2)
        return tournament.find_match(match_id)

    def adjust_score(self, match_id, side, change):
        """Add ``change`` legs to one side of a match, never below zero."""
        tournament = self._require_tournament()
        if side not in ('team1', 'team2'):
            raise InvalidInput(f"Unknown side '{side}'.")
        match = tournament.find_match(match_id)
        if match is None:
            raise InvalidInput(f"Match {match_id} not found.")
        score1 = match.score1 or 0
        score2 = match.score2 or 0
        if side == 'team1':
            score1 = max(0, score1 + change)
        else:
            score2 = max(0, score2 + change)
        return self.record_score(match_id, score1, score2)

    def reset(self):
        self.tournament = None
        self.knockout_start_time = None


class KnockoutStage:
    def __init__(self, matches: Optional[List[Match]] = None):
        self.matches = matches if matches else []

    def create(self, group_standings, teams_advancing, num_boards, time_model):
        advancers = select_advancers(group_standings, teams_advancing)
        if not advancers:
            raise InsufficientData("No teams available to advance to the knockout stage.")
        self.matches = build_bracket(advancers, num_boards, time_model)
        return self.matches

    def record_score(self, match_id, score1, score2):
        match = next((m for m in self.matches if m.id == match_id), None)
        if match is None:
            raise InvalidInput(f"Knockout match {match_id} not found.")
        self.matches = record_result(self.matches, match_id, score1, score2)
        return next(m for m in self.matches if m.id == match_id)

    def rounds(self):
        return group_by_round(self.matches)

    def champion(self):
        return champion(self.matches)

    def reset(self):
        self.matches = []


class TournamentManager:
    """Owns the whole tournament and applies user actions to it."""

    def __init__(self, settings=None, team_names=None, group_stage=None, knockout=None):
        self.settings = settings or Settings()
        self.team_names = team_names if team_names is not None else default_team_names(self.settings.num_teams)
        self.group_stage = group_stage or GroupStage()
        self.knockout = knockout or KnockoutStage()

    @property
    def tournament(self) -> Optional[Tournament]:
        return self.group_stage.tournament

    def known_teams(self):
        """Names on the roster plus every team placed in a group."""
        names = set(self.team_names)
        if self.tournament is not None:
            names.update(name for group in self.tournament.groups for name in group)
        return names

    def update_settings(self, **values):
        cleaned = Settings._validate(values)
        resizing = 'num_teams' in cleaned and cleaned['num_teams'] != len(self.team_names)
        if resizing and self.tournament is not None:
            raise InvalidInput("Reset the tournament before changing the number of teams.")
        self.settings.update(**cleaned)
        if resizing:
            self.resize_teams(self.settings.num_teams)

    def resize_teams(self, num_teams):
        """Grow or shrink the roster, keeping existing names."""
        names = list(self.team_names[:num_teams])
        for name in default_team_names(num_teams)[len(names):]:
            while name in names:
                name = f"{name}*"
            names.append(name)
        self.team_names = names

    def set_team_names(self, names):
        cleaned = [str(name).strip() for name in names]
        for name in cleaned:
            _check_team_name(name)
        if len(set(cleaned)) != len(cleaned):
            raise InvalidInput("Team names must be unique.")
        if self.tournament is not None:
            raise InvalidInput("Reset the tournament before replacing the team list.")
        self.team_names = cleaned
        self.settings.num_teams = len(cleaned)

    def generate_tournament(self, rng: Optional[random.Random] = None) -> Tournament:
        s = self.settings
        tournament = self.group_stage.generate(
            self.team_names, s.num_groups, s.num_boards, s.start_time, s.match_duration, rng=rng)
        self.knockout.reset()
        return tournament

    def record_group_score(self, match_id, score1, score2):
        return self.group_stage.record_score(match_id, score1, score2)

    def adjust_group_score(self, match_id, side, change):
        return self.group_stage.adjust_score(match_id, side, change)

    def standings(self) -> List[List[Dict]]:
        if self.tournament is None:
            return []
        return calculate_group_standings(self.tournament)

    def team_schedule(self, team) -> List[Dict]:
        if self.tournament is None:
            return []
        if team not in self.known_teams():
            raise InvalidInput(f"Unknown team '{team}'.")
        return team_schedule(team, self.tournament.matches)

    def create_knockout_stage(self) -> List[Match]:
        """Build (or rebuild) the bracket from the current standings."""
        tournament = self.tournament
        if tournament is None:
            raise InsufficientData("No tournament data is available.")
        if not group_stage_complete(tournament):
            raise InsufficientData("Please complete all group stage matches first.")
        s = self.settings
        time_model = KnockoutTimeModel(
            s.start_time, s.match_duration,
            knockout_start_time=self.group_stage.knockout_start_time,
            total_group_matches=len(tournament.matches),
        )
        return self.knockout.create(self.standings(), s.teams_advancing, s.num_boards, time_model)

    def record_knockout_score(self, match_id, score1, score2):
        return self.knockout.record_score(match_id, score1, score2)

    def rename_team(self, old_name, new_name):
        """Rename a team everywhere it is referenced."""
        new_name = (new_name or '').strip()
        _check_team_name(new_name)
        if old_name not in self.team_names:
            raise InvalidInput(f"Unknown team '{old_name}'.")
        if new_name == old_name:
            return
        if new_name in self.known_teams():
            raise InvalidInput(f'Team "{new_name}" already exists.')

        def rename(name):
            return new_name if name == old_name else name

        self.team_names = [rename(name) for name in self.team_names]
        tournament = self.tournament
        if tournament is not None:
            tournament.groups = [[rename(name) for name in group] for group in tournament.groups]
            for match in tournament.matches:
                match.team1 = rename(match.team1)
                match.team2 = rename(match.team2)
        for match in self.knockout.matches:
            match.team1 = rename(match.team1)
            match.team2 = rename(match.team2)
            match.winner = rename(match.winner)
        logger.info("Renamed team %s to %s", old_name, new_name)

    def reset(self, include_settings=False):
        """Drop the tournament and bracket. Settings and team names survive unless asked."""
        self.group_stage.reset()
        self.knockout.reset()
        if include_settings:
            self.settings.reset()
            self.team_names = default_team_names(self.settings.num_teams)

    def to_dict(self):
        return {
            'settings': self.settings.to_dict(),
            'team_names': list(self.team_names),
            'tournament': self.tournament.to_dict() if self.tournament else None,
            'knockout_start_time': self.group_stage.knockout_start_time,
            'knockout_matches': [m.to_dict() for m in self.knockout.matches],
            'champion': self.knockout.champion(),
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        settings = Settings.from_dict(data.get('settings'))
        tournament_data = data.get('tournament')
        tournament = Tournament.from_dict(tournament_data) if tournament_data is not None else None
        knockout_data = data.get('knockout_matches')
        if not isinstance(knockout_data, list):
            knockout_data = []
        return cls(
            settings=settings,
            team_names=data.get('team_names'),
            group_stage=GroupStage(tournament, data.get('knockout_start_time')),
            knockout=KnockoutStage([Match.from_dict(m) for m in knockout_data if isinstance(m, dict)]),
        )

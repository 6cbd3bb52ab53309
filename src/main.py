# Command-line entry point: print the group stage schedule for a roster

import argparse
import os
import random
import sys
import yaml
from core.errors import TournamentError
from core.state import TournamentManager, Settings


def load_teams(file_path):
    """Load team names from a YAML list."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file)
    if not data:
        return []
    if not isinstance(data, list):
        raise TournamentError(f"{file_path} must contain a list of team names")
    return [str(name) for name in data]


def load_settings(file_path):
    settings = Settings()
    if os.path.exists(file_path):
        with open(file_path, mode='r', encoding='utf-8') as file:
            settings.update(**(yaml.safe_load(file) or {}))
    return settings


def format_schedule(manager):
    lines = []
    tournament = manager.tournament
    for index, group in enumerate(tournament.groups, start=1):
        lines.append(f"# Group {index}: {', '.join(group)}")
    current_time = None
    for match in tournament.matches:
        if match.time != current_time:
            current_time = match.time
            lines.append("")
            lines.append(f"{current_time}")
        lines.append(f"  Board {match.board}: {match.team1} vs {match.team2} (Group {match.group})")
    if manager.group_stage.knockout_start_time:
        lines.append("")
        lines.append(f"Knockout stage starts at {manager.group_stage.knockout_start_time}")
    return "\n".join(lines)


def parse_args(argv=None):
    base_dir = os.path.dirname(os.path.dirname(__file__))
    parser = argparse.ArgumentParser(
        description='Generate groups and print the group stage schedule'
    )
    parser.add_argument(
        'teams',
        nargs='?',
        default=os.path.join(base_dir, 'data', 'teams.yaml'),
        help='YAML list of team names (default: data/teams.yaml)'
    )
    parser.add_argument(
        '--settings',
        default=os.path.join(base_dir, 'data', 'settings.yaml'),
        help='Settings YAML file; missing keys use the defaults'
    )
    parser.add_argument('--groups', type=int, help='Number of groups')
    parser.add_argument('--boards', type=int, help='Number of boards')
    parser.add_argument('--start', help='First match time, HH:MM')
    parser.add_argument('--duration', type=int, help='Match duration in minutes')
    parser.add_argument('--seed', type=int, help='Seed for the group draw')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    overrides = {
        'num_groups': args.groups,
        'num_boards': args.boards,
        'start_time': args.start,
        'match_duration': args.duration,
    }

    try:
        teams = load_teams(args.teams)
        settings = load_settings(args.settings)
        settings.update(**{k: v for k, v in overrides.items() if v is not None})
        manager = TournamentManager(settings=settings, team_names=teams)
        rng = random.Random(args.seed) if args.seed is not None else None
        manager.generate_tournament(rng=rng)
    except (OSError, yaml.YAMLError, TournamentError) as e:
        print(f"Cannot generate tournament: {e}", file=sys.stderr)
        return 1

    print(format_schedule(manager))
    return 0


if __name__ == '__main__':
    sys.exit(main())

"""
Flask web application for the Dart Tournament Scheduler.
"""
import os
import logging
import yaml
from filelock import FileLock
from flask import Flask, request, jsonify
from core.errors import TournamentError, InsufficientData, InvalidInput, InvalidScore
from core.elimination import get_round_name
from core.state import TournamentManager, Settings, DEFAULT_SETTINGS

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

SETTINGS_FILE = os.path.join(DATA_DIR, 'settings.yaml')
TEAMS_FILE = os.path.join(DATA_DIR, 'teams.yaml')
TOURNAMENT_FILE = os.path.join(DATA_DIR, 'tournament.yaml')
BRACKET_FILE = os.path.join(DATA_DIR, 'bracket.yaml')
LOCK_TIMEOUT = 10


def _data_lock() -> FileLock:
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(os.path.join(DATA_DIR, '.lock'), timeout=LOCK_TIMEOUT)


def _load_yaml(path, default):
    if not os.path.exists(path):
        return default
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return default
    return data if data is not None else default


def _save_yaml(path, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def load_settings():
    """Load settings from YAML file, merging with defaults."""
    data = _load_yaml(SETTINGS_FILE, {})
    if not isinstance(data, dict):
        app.logger.warning(f'Ignoring malformed {SETTINGS_FILE}')
        return dict(DEFAULT_SETTINGS)
    return Settings.from_dict(data).to_dict()


def load_state() -> TournamentManager:
    """Rebuild the tournament from the data files."""
    teams = _load_yaml(TEAMS_FILE, None)
    tournament = _load_yaml(TOURNAMENT_FILE, {})
    bracket = _load_yaml(BRACKET_FILE, {})
    if not isinstance(tournament, dict):
        app.logger.warning(f'Ignoring malformed {TOURNAMENT_FILE}')
        tournament = {}
    if not isinstance(bracket, dict):
        app.logger.warning(f'Ignoring malformed {BRACKET_FILE}')
        bracket = {}
    return TournamentManager.from_dict({
        'settings': load_settings(),
        'team_names': teams if isinstance(teams, list) else None,
        'tournament': tournament.get('tournament'),
        'knockout_start_time': tournament.get('knockout_start_time'),
        'knockout_matches': bracket.get('matches'),
    })


def save_state(manager: TournamentManager):
    """Write the tournament to the data files."""
    state = manager.to_dict()
    _save_yaml(SETTINGS_FILE, state['settings'])
    _save_yaml(TEAMS_FILE, state['team_names'])
    _save_yaml(TOURNAMENT_FILE, {
        'tournament': state['tournament'],
        'knockout_start_time': state['knockout_start_time'],
    })
    _save_yaml(BRACKET_FILE, {'matches': state['knockout_matches']})


def _apply(action):
    """Load, mutate and save under the data lock. Nothing is saved if the action raises."""
    with _data_lock():
        manager = load_state()
        result = action(manager)
        save_state(manager)
    return manager, result


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput('No data provided')
    return data


def _score_field(data, key):
    value = data.get(key)
    if isinstance(value, bool):
        raise InvalidScore('Scores must be integers')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidScore('Scores must be integers')


def _bracket_payload(manager):
    return {
        'rounds': [
            {
                'round': r['round'],
                'name': r['name'],
                'matches': [m.to_dict() for m in r['matches']],
            }
            for r in manager.knockout.rounds()
        ],
        'champion': manager.knockout.champion(),
    }


@app.errorhandler(TournamentError)
def handle_tournament_error(error):
    status = 409 if isinstance(error, InsufficientData) else 400
    app.logger.warning(f'Rejected {request.method} {request.path}: {error}')
    return jsonify({'success': False, 'error': str(error)}), status


@app.route('/api/state', methods=['GET'])
def api_state():
    manager = load_state()
    return jsonify({'success': True, 'state': manager.to_dict()})


@app.route('/api/settings', methods=['POST'])
def api_update_settings():
    """AJAX endpoint for updating settings."""
    data = _json_body()
    manager, _ = _apply(lambda m: m.update_settings(**data))
    return jsonify({'success': True, 'settings': manager.settings.to_dict(),
                    'team_names': manager.team_names})


@app.route('/api/teams', methods=['POST'])
def api_set_teams():
    data = _json_body()
    names = data.get('teams')
    if not isinstance(names, list):
        raise InvalidInput('Teams must be a list')
    manager, _ = _apply(lambda m: m.set_team_names(names))
    return jsonify({'success': True, 'team_names': manager.team_names})


@app.route('/api/teams/rename', methods=['POST'])
def api_rename_team():
    """AJAX endpoint for editing team name."""
    data = _json_body()
    old_name = str(data.get('old_name', '')).strip()
    new_name = str(data.get('new_name', '')).strip()
    manager, _ = _apply(lambda m: m.rename_team(old_name, new_name))
    return jsonify({'success': True, 'team_names': manager.team_names})


@app.route('/api/teams/<path:name>/schedule', methods=['GET'])
def api_team_schedule(name):
    manager = load_state()
    return jsonify({'success': True, 'team': name, 'schedule': manager.team_schedule(name)})


@app.route('/api/generate', methods=['POST'])
def api_generate():
    manager, tournament = _apply(lambda m: m.generate_tournament())
    app.logger.info(f'Generated tournament: {len(tournament.groups)} groups, {len(tournament.matches)} matches')
    return jsonify({'success': True, 'tournament': tournament.to_dict(),
                    'knockout_start_time': manager.group_stage.knockout_start_time})


@app.route('/api/matches/<int:match_id>/score', methods=['POST'])
def api_group_score(match_id):
    data = _json_body()
    score1 = _score_field(data, 'score1')
    score2 = _score_field(data, 'score2')
    _, match = _apply(lambda m: m.record_group_score(match_id, score1, score2))
    return jsonify({'success': True, 'match': match.to_dict()})


@app.route('/api/matches/<int:match_id>/adjust', methods=['POST'])
def api_group_adjust(match_id):
    data = _json_body()
    side = data.get('team')
    change = _score_field(data, 'change')
    _, match = _apply(lambda m: m.adjust_group_score(match_id, side, change))
    return jsonify({'success': True, 'match': match.to_dict()})


@app.route('/api/standings', methods=['GET'])
def api_standings():
    manager = load_state()
    teams_advancing = manager.settings.teams_advancing
    return jsonify({
        'success': True,
        'teams_advancing': teams_advancing,
        'groups': [
            {'group': index + 1, 'standings': table}
            for index, table in enumerate(manager.standings())
        ],
    })


@app.route('/api/knockout', methods=['GET'])
def api_knockout():
    manager = load_state()
    return jsonify({'success': True, **_bracket_payload(manager)})


@app.route('/api/knockout', methods=['POST'])
def api_create_knockout():
    """Create, or regenerate from current standings, the knockout bracket."""
    manager, matches = _apply(lambda m: m.create_knockout_stage())
    first_round = [m for m in matches if m.round == 1]
    total_rounds = max(m.round for m in matches)
    app.logger.info(f'Created knockout bracket: {len(matches)} matches, starting with '
                    f'{get_round_name(1, total_rounds)} ({len(first_round)} matches)')
    return jsonify({'success': True, **_bracket_payload(manager)})


@app.route('/api/knockout/<int:match_id>/score', methods=['POST'])
def api_knockout_score(match_id):
    data = _json_body()
    score1 = _score_field(data, 'score1')
    score2 = _score_field(data, 'score2')
    manager, match = _apply(lambda m: m.record_knockout_score(match_id, score1, score2))
    return jsonify({'success': True, 'match': match.to_dict(), **_bracket_payload(manager)})


@app.route('/api/reset', methods=['POST'])
def api_reset_all():
    """Reset tournament data; pass {"settings": true} to restore default settings too."""
    data = request.get_json(silent=True) or {}
    include_settings = bool(data.get('settings', False)) if isinstance(data, dict) else False
    _apply(lambda m: m.reset(include_settings=include_settings))
    return jsonify({'success': True})


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True)

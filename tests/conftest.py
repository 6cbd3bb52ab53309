"""
Shared pytest fixtures for dart tournament scheduler tests.

Running tests:
    pytest tests/
"""
import pytest
import random
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import AdvancingTeam
from core.state import TournamentManager, Settings


@pytest.fixture
def four_teams():
    return ["A", "B", "C", "D"]


@pytest.fixture
def eight_teams():
    return [f"Team {i}" for i in range(1, 9)]


@pytest.fixture
def two_groups():
    """Two groups of four teams."""
    return [["A1", "A2", "A3", "A4"], ["B1", "B2", "B3", "B4"]]


@pytest.fixture
def eight_advancers():
    """Top two of four groups."""
    return [
        AdvancingTeam(f"G{group}P{position}", group, position)
        for group in range(1, 5)
        for position in range(1, 3)
    ]


@pytest.fixture
def manager(eight_teams):
    """Manager with eight named teams, two groups on two boards."""
    settings = Settings(num_teams=8, num_groups=2, num_boards=2, match_duration=15,
                        start_time="09:00", teams_advancing=2)
    return TournamentManager(settings=settings, team_names=list(eight_teams))


@pytest.fixture
def generated_manager(manager):
    manager.generate_tournament(rng=random.Random(7))
    return manager


def complete_group_stage(manager, score1=3, score2=1):
    """Score every group match so team1 wins."""
    for match in list(manager.tournament.matches):
        manager.record_group_score(match.id, score1, score2)


@pytest.fixture
def completed_manager(generated_manager):
    complete_group_stage(generated_manager)
    return generated_manager


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the web app's data files at a temporary directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.setattr(app_module, 'SETTINGS_FILE', str(data_dir / "settings.yaml"))
    monkeypatch.setattr(app_module, 'TEAMS_FILE', str(data_dir / "teams.yaml"))
    monkeypatch.setattr(app_module, 'TOURNAMENT_FILE', str(data_dir / "tournament.yaml"))
    monkeypatch.setattr(app_module, 'BRACKET_FILE', str(data_dir / "bracket.yaml"))
    return str(data_dir)


@pytest.fixture
def client(temp_data_dir):
    """Create a test client backed by a temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client

"""
Shared pytest fixtures for Disc Bracket tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os
import yaml

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.insert(0, os.path.dirname(__file__))

from factories import make_match, make_team


@pytest.fixture
def four_teams():
    """Teams A-D (ids t0-t3)."""
    return [make_team(i) for i in range(4)]


@pytest.fixture
def six_teams():
    """Teams A-F (ids t0-t5)."""
    return [make_team(i) for i in range(6)]


@pytest.fixture
def eight_teams():
    """Teams A-H (ids t0-t7)."""
    return [make_team(i) for i in range(8)]


@pytest.fixture
def quarterfinals(eight_teams):
    """Four round-1 quarterfinal matches for eight teams, none played."""
    return [
        make_match(f"qf{i}", f"t{2 * i}", f"t{2 * i + 1}", round=1, round_name="Quarterfinals",
                   bracket_position=i)
        for i in range(4)
    ]


@pytest.fixture
def client():
    """Create a test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the service at a temporary data directory with one tournament, 'spring-open'."""
    import app as app_module

    tournament_dir = tmp_path / "tournaments" / "spring-open"
    tournament_dir.mkdir(parents=True)

    (tournament_dir / "tournament.yaml").write_text(yaml.dump(
        {'name': 'Spring Open', 'format': 'round-robin'}, default_flow_style=False))
    (tournament_dir / "teams.yaml").write_text(yaml.dump([
        {'id': 't0', 'name': 'Team A'},
        {'id': 't1', 'name': 'Team B'},
        {'id': 't2', 'name': 'Team C'},
        {'id': 't3', 'name': 'Team D'},
    ], default_flow_style=False))
    (tournament_dir / "matches.yaml").write_text(yaml.dump([
        {'id': 'm1', 'teamA': 't0', 'teamB': 't1', 'status': 'completed',
         'score': {'forA': 15, 'forB': 10}, 'winnerId': 't0', 'round': 1},
        {'id': 'm2', 'teamA': 't2', 'teamB': 't3', 'status': 'completed',
         'score': {'forA': 12, 'forB': 12}, 'round': 1},
        {'id': 'm3', 'teamA': 't1', 'teamB': 't2', 'status': 'completed',
         'score': {'forA': 15, 'forB': 8}, 'winnerId': 't1', 'round': 2},
        {'id': 'm4', 'teamA': 't0', 'teamB': 't3', 'status': 'scheduled', 'round': 2},
    ], default_flow_style=False, sort_keys=False))

    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))

    return tmp_path

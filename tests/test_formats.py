"""
Tests for format dispatch and the combined tournament view.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from discbracket.models import EmptySlot, MatchSlot, TournamentFormat
from discbracket.formats import (
    compute_tournament_view,
    project,
    project_pool_play,
    project_round_robin,
    split_pool_stage,
)
from discbracket.standings import OVERALL_POOL
from factories import make_match


@pytest.fixture
def round_robin_matches():
    """A beats B 15-10, C ties D 12-12 in round 1; B beats C 15-8 in round 2."""
    return [
        make_match('m1', 't0', 't1', score=(15, 10), round=1),
        make_match('m2', 't2', 't3', score=(12, 12), round=1),
        make_match('m3', 't1', 't2', score=(15, 8), round=2),
    ]


@pytest.fixture
def pool_play_matches():
    """Two pool games and an unplayed final between the pool winners."""
    return [
        make_match('p1', 't0', 't1', score=(15, 10), pool='Pool A'),
        make_match('p2', 't2', 't3', score=(11, 13), pool='Pool B'),
        make_match('f1', 't0', 't3', round=2, round_name='Finals'),
    ]


class TestRoundRobin:
    """Round robin renders every match flat with no edges."""

    def test_flat_slots_no_edges(self, four_teams, round_robin_matches):
        projection = project_round_robin(four_teams, round_robin_matches)
        assert [s.key for s in projection.slots] == ['match-m1', 'match-m2', 'match-m3']
        assert projection.edges == []
        assert all(isinstance(s, MatchSlot) for s in projection.slots)

    def test_slot_indexes_restart_each_round(self, four_teams, round_robin_matches):
        projection = project_round_robin(four_teams, round_robin_matches)
        assert [(s.round, s.index) for s in projection.slots] == [(1, 0), (1, 1), (2, 0)]

    def test_team_names_resolved(self, four_teams, round_robin_matches):
        slot = project_round_robin(four_teams, round_robin_matches).slots[0]
        assert (slot.team_a_name, slot.team_b_name) == ('Team A', 'Team B')
        assert slot.team_a_winner

    def test_no_teams(self, round_robin_matches):
        assert project_round_robin([], round_robin_matches).slots == []


class TestPoolPlay:
    """Pool games flat, then the bracket stage."""

    def test_split_by_pool(self, pool_play_matches):
        pool_matches, bracket_matches = split_pool_stage(pool_play_matches)
        assert [m.id for m in pool_matches] == ['p1', 'p2']
        assert [m.id for m in bracket_matches] == ['f1']

    def test_pool_games_have_no_edges(self, four_teams, pool_play_matches):
        projection = project_pool_play(four_teams, pool_play_matches)
        pool_keys = {'match-p1', 'match-p2'}
        assert not any(e.source in pool_keys or e.target in pool_keys for e in projection.edges)

    def test_bracket_stage_reaches_champion(self, four_teams, pool_play_matches):
        projection = project_pool_play(four_teams, pool_play_matches)
        keys = [s.key for s in projection.slots]
        assert keys == ['match-p1', 'match-p2', 'match-f1', 'champion-f1']
        assert [(e.source, e.target) for e in projection.edges] == [('match-f1', 'champion-f1')]

    def test_no_placeholders_before_bracket_is_scheduled(self, four_teams, pool_play_matches):
        projection = project_pool_play(four_teams, pool_play_matches[:2])
        assert not any(isinstance(s, EmptySlot) for s in projection.slots)
        assert projection.edges == []

    def test_unnamed_lone_bracket_match_is_final(self, six_teams):
        """Six teams, two semifinals and a final, none named; the last bracket match still crowns."""
        matches = [
            make_match('p1', 't0', 't1', score=(15, 9), pool='Pool A'),
            make_match('s1', 't0', 't3', score=(15, 12), round=1, bracket_position=0),
            make_match('s2', 't2', 't5', score=(11, 15), round=1, bracket_position=1),
            make_match('g1', 't0', 't5', score=(15, 13), round=2),
        ]
        projection = project_pool_play(six_teams, matches)
        assert projection.slots[-1].key == 'champion-g1'
        assert projection.slots[-1].team_name == 'Team A'
        edges = {(e.source, e.target) for e in projection.edges}
        assert {('match-s1', 'match-g1'), ('match-s2', 'match-g1'), ('match-g1', 'champion-g1')} == edges


class TestDispatch:

    def test_round_robin(self, four_teams, round_robin_matches):
        assert project(four_teams, round_robin_matches, 'round-robin').edges == []

    def test_single_elimination_projects_placeholders(self, four_teams):
        projection = project(four_teams, [], TournamentFormat.SINGLE_ELIMINATION)
        assert [s.key for s in projection.slots] == [
            'empty-1-0', 'empty-1-1', 'empty-2-0', 'champion-tbd']

    def test_pool_play(self, four_teams, pool_play_matches):
        projection = project(four_teams, pool_play_matches, 'pool-play-bracket')
        assert 'champion-f1' in [s.key for s in projection.slots]

    def test_unknown_format_renders_round_robin(self, four_teams, round_robin_matches):
        projection = project(four_teams, round_robin_matches, 'swiss')
        assert len(projection.slots) == 3
        assert projection.edges == []


class TestTournamentView:

    def test_round_robin_view(self, four_teams, round_robin_matches):
        view = compute_tournament_view(four_teams, round_robin_matches, 'round-robin')
        assert view.format is TournamentFormat.ROUND_ROBIN
        assert list(view.standings) == [OVERALL_POOL]
        assert view.standings[OVERALL_POOL][0].team_name == 'Team A'
        assert len(view.slots) == 3
        assert view.edges == []

    def test_pool_play_view_uses_pool_count(self, six_teams):
        view = compute_tournament_view(six_teams, [], 'pool-play-bracket', num_pools=2)
        assert list(view.standings) == ['Pool A', 'Pool B']

    def test_view_serializes(self, four_teams, pool_play_matches):
        data = compute_tournament_view(four_teams, pool_play_matches, 'pools').to_dict()
        assert data['format'] == 'pool-play-bracket'
        assert set(data['standings']) == {'Pool A', 'Pool B'}
        assert data['edges'][0]['key'] == 'edge-match-f1-champion-f1'
        assert data['slots'][-1] == {'key': 'champion-f1', 'type': 'champion', 'teamName': 'TBD'}

    def test_view_is_deterministic(self, four_teams, round_robin_matches):
        first = compute_tournament_view(four_teams, round_robin_matches, 'round-robin').to_dict()
        second = compute_tournament_view(four_teams, round_robin_matches, 'round-robin').to_dict()
        assert first == second

    def test_empty_roster(self, round_robin_matches):
        view = compute_tournament_view([], round_robin_matches, 'single-elimination')
        assert view.standings == {}
        assert view.slots == []
        assert view.edges == []

"""
Format dispatch: one projection per competition format, plus the combined
standings-and-bracket view of a tournament snapshot.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .elimination import group_matches_by_round, make_match_slot, project_elimination
from .models import BracketProjection, Edge, Match, Slot, Standing, Team, TournamentFormat
from .standings import calculate_pool_standings, compute_standings

logger = logging.getLogger(__name__)


def project_round_robin(teams: List[Team], matches: List[Match]) -> BracketProjection:
    """Every match as a flat slot, round by round, with no edges between them."""
    projection = BracketProjection()
    if not teams:
        return projection
    team_names = {team.id: team.name for team in teams}
    for bracket_round in group_matches_by_round(matches):
        for index, match in enumerate(bracket_round.matches):
            projection.slots.append(make_match_slot(match, bracket_round.round_name, index, team_names))
    return projection


def split_pool_stage(matches: List[Match]):
    """Split matches into (pool stage, bracket stage) by whether a pool is recorded."""
    pool_matches = [m for m in matches if m.pool is not None]
    bracket_matches = [m for m in matches if m.pool is None]
    return pool_matches, bracket_matches


def project_pool_play(teams: List[Team], matches: List[Match],
                      pool_standings: Optional[Dict[str, List[Standing]]] = None,
                      num_pools: Optional[int] = None) -> BracketProjection:
    """
    Pool matches as flat slots followed by the elimination stage.

    Pool standings are informational here: seeding the bracket from them is
    the schedule generator's job, so the bracket stage is drawn from whatever
    bracket matches already exist.
    """
    if pool_standings is None:
        pool_standings = calculate_pool_standings(teams, matches, num_pools)
    pool_matches, bracket_matches = split_pool_stage(matches)
    logger.debug("Pool play: %d pools, %d pool matches, %d bracket matches",
                 len(pool_standings), len(pool_matches), len(bracket_matches))

    projection = project_round_robin(teams, pool_matches)
    projection.extend(project_elimination(teams, bracket_matches, with_placeholders=False))
    return projection


def project(teams: List[Team], matches: List[Match], fmt,
            pool_standings: Optional[Dict[str, List[Standing]]] = None,
            num_pools: Optional[int] = None) -> BracketProjection:
    """Project the bracket graph for a tournament in the given format."""
    fmt = TournamentFormat.parse(fmt)
    if fmt is TournamentFormat.SINGLE_ELIMINATION:
        return project_elimination(teams, matches)
    if fmt is TournamentFormat.POOL_PLAY_BRACKET:
        return project_pool_play(teams, matches, pool_standings, num_pools)
    return project_round_robin(teams, matches)


@dataclass
class TournamentView:
    format: TournamentFormat
    standings: Dict[str, List[Standing]] = field(default_factory=dict)
    slots: List[Slot] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'format': self.format.value,
            'standings': {pool: [s.to_dict() for s in rows] for pool, rows in self.standings.items()},
            'slots': [slot.to_dict() for slot in self.slots],
            'edges': [edge.to_dict() for edge in self.edges],
        }


def compute_tournament_view(teams: List[Team], matches: List[Match], fmt,
                            num_pools: Optional[int] = None) -> TournamentView:
    """
    Recompute standings and bracket from a full snapshot of teams and matches.

    Pure: the same snapshot always yields the same view, and neither input
    is modified.
    """
    fmt = TournamentFormat.parse(fmt)
    standings = compute_standings(teams, matches, fmt, num_pools)
    projection = project(teams, matches, fmt, pool_standings=standings)
    return TournamentView(format=fmt, standings=standings, slots=projection.slots, edges=projection.edges)

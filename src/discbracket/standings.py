"""
Standings derived from team rosters and completed match results.
"""
import logging
import math
from typing import Dict, List, Optional

from .models import Match, Standing, Team, TournamentFormat

logger = logging.getLogger(__name__)

OVERALL_POOL = "Overall"


def get_pool_name(pool_index: int) -> str:
    """Get the display name of a pool from its 0-based index (Pool A, Pool B, ...)."""
    if pool_index < 26:
        return f"Pool {chr(ord('A') + pool_index)}"
    return f"Pool {pool_index + 1}"


def calculate_pool_count(num_teams: int) -> int:
    """Number of pools used for pool play: ceil(sqrt(teams))."""
    if num_teams <= 0:
        return 0
    return math.ceil(math.sqrt(num_teams))


def assign_pools(teams: List[Team], num_pools: Optional[int] = None) -> Dict[str, List[Team]]:
    """
    Partition the roster into pools by roster order.

    num_pools defaults to ceil(sqrt(n)); the schedule generator may have used
    a different count, in which case it is passed explicitly.

    The first ceil(n / pool_count) teams go to Pool A, the next slice to
    Pool B, and so on. Reordering the roster reorders the pools.
    """
    pools = {}
    if num_pools is None:
        num_pools = calculate_pool_count(len(teams))
    if not teams or num_pools <= 0:
        return pools
    teams_per_pool = math.ceil(len(teams) / num_pools)

    for pool_index in range(num_pools):
        pool_teams = teams[pool_index * teams_per_pool:(pool_index + 1) * teams_per_pool]
        if not pool_teams:
            continue
        pools[get_pool_name(pool_index)] = list(pool_teams)

    return pools


def sort_standings(standings: List[Standing]) -> List[Standing]:
    """
    Sort by wins, then point differential, both descending.

    Teams equal on both keep their relative input order.
    """
    return sorted(standings, key=lambda s: (-s.wins, -s.point_diff))


def _tally(standings_by_team: Dict[str, Standing], matches: List[Match], count_draws: bool) -> None:
    for match in matches:
        if not match.has_result:
            continue
        standing_a = standings_by_team.get(match.team_a)
        standing_b = standings_by_team.get(match.team_b)
        if standing_a is None or standing_b is None:
            continue

        score = match.score
        standing_a.points_for += score.for_a
        standing_a.points_against += score.for_b
        standing_b.points_for += score.for_b
        standing_b.points_against += score.for_a
        standing_a.matches_played += 1
        standing_b.matches_played += 1

        if score.for_a > score.for_b:
            standing_a.wins += 1
            standing_b.losses += 1
        elif score.for_b > score.for_a:
            standing_b.wins += 1
            standing_a.losses += 1
        elif count_draws:
            standing_a.draws += 1
            standing_b.draws += 1


def calculate_overall_standings(teams: List[Team], matches: List[Match]) -> List[Standing]:
    """Standings for every team in a single table; ties count as draws."""
    standings = [Standing(team_id=team.id, team_name=team.name) for team in teams]
    _tally({s.team_id: s for s in standings}, matches, count_draws=True)
    return sort_standings(standings)


def calculate_pool_standings(teams: List[Team], matches: List[Match],
                             num_pools: Optional[int] = None) -> Dict[str, List[Standing]]:
    """
    Calculate standings for each pool.

    Only matches with both teams in the same pool count. A tie adds points
    for both sides but no win, loss or draw.

    Returns: {pool_name: [Standing, ...]} sorted by wins then point differential.
    """
    standings = {}
    for pool_name, pool_teams in assign_pools(teams, num_pools).items():
        pool_standings = [Standing(team_id=team.id, team_name=team.name, pool=pool_name)
                          for team in pool_teams]
        _tally({s.team_id: s for s in pool_standings}, matches, count_draws=False)
        standings[pool_name] = sort_standings(pool_standings)
    return standings


def compute_standings(teams: List[Team], matches: List[Match],
                      fmt=TournamentFormat.ROUND_ROBIN, num_pools: Optional[int] = None) -> Dict[str, List[Standing]]:
    """
    Compute standings for a tournament snapshot.

    Pool play formats are split into pools; every other format gets a single
    'Overall' table. num_pools overrides the default pool count.
    """
    fmt = TournamentFormat.parse(fmt)
    if not teams:
        return {}

    roster = {team.id for team in teams}
    dangling = [m.id for m in matches if m.has_result and (m.team_a not in roster or m.team_b not in roster)]
    if dangling:
        logger.debug("Ignoring %d completed matches with teams outside the roster: %s", len(dangling), dangling)

    if fmt is TournamentFormat.POOL_PLAY_BRACKET:
        return calculate_pool_standings(teams, matches, num_pools)
    return {OVERALL_POOL: calculate_overall_standings(teams, matches)}


def calculate_leaderboard(teams: List[Team], matches: List[Match]) -> List[Dict]:
    """
    Build a ranked leaderboard across every completed match.

    Wins and losses follow the recorded winner; a completed match with no
    winner and level scores is a draw.

    Ranking: wins -> point differential -> points for -> team name
    """
    rows = {}
    for team in teams:
        rows[team.id] = {
            'teamId': team.id,
            'teamName': team.name,
            'wins': 0,
            'losses': 0,
            'draws': 0,
            'pointsFor': 0,
            'pointsAgainst': 0,
            'pointDiff': 0,
            'matchesPlayed': 0,
            'winPercentage': 0,
        }

    for match in matches:
        if not match.is_completed:
            continue
        score_a = match.score.for_a if match.score else 0
        score_b = match.score.for_b if match.score else 0
        winner = match.effective_winner

        for team_id, scored, conceded in ((match.team_a, score_a, score_b), (match.team_b, score_b, score_a)):
            row = rows.get(team_id)
            if row is None:
                continue
            row['matchesPlayed'] += 1
            row['pointsFor'] += scored
            row['pointsAgainst'] += conceded
            row['pointDiff'] += scored - conceded
            if winner is not None:
                if winner == team_id:
                    row['wins'] += 1
                else:
                    row['losses'] += 1
            elif scored == conceded:
                row['draws'] += 1

    leaderboard = sorted(
        rows.values(),
        key=lambda r: (-r['wins'], -r['pointDiff'], -r['pointsFor'], r['teamName'])
    )
    for rank, row in enumerate(leaderboard, start=1):
        row['rank'] = rank
        if row['matchesPlayed'] > 0:
            row['winPercentage'] = math.floor(row['wins'] * 100 / row['matchesPlayed'] + 0.5)
    return leaderboard


def summarize_matches(teams: List[Team], matches: List[Match]) -> Dict[str, int]:
    """Count teams, completed matches and total matches for a tournament."""
    return {
        'totalTeams': len(teams),
        'completedMatches': sum(1 for m in matches if m.is_completed),
        'totalMatches': len(matches),
    }


def find_standing(standings: Dict[str, List[Standing]], team_id: str) -> Optional[Standing]:
    """Look up a team's standing in any pool."""
    for pool_standings in standings.values():
        for standing in pool_standings:
            if standing.team_id == team_id:
                return standing
    return None

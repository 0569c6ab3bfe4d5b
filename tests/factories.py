"""
Builders for teams and matches used across the test suite.
"""
from discbracket.models import Match, MatchStatus, Score, Team


def make_team(index):
    """Team with id 't<index>' named 'Team <letter>'."""
    return Team(id=f"t{index}", name=f"Team {chr(ord('A') + index)}")


def make_match(match_id, team_a, team_b, score=None, status=None, winner=None, **kwargs):
    """
    Build a match. A score without an explicit status makes it completed, and
    the winner defaults to the higher scorer.
    """
    if status is None:
        status = MatchStatus.COMPLETED if score is not None else MatchStatus.SCHEDULED
    score_obj = Score(*score) if score is not None else None
    if winner is None and status is MatchStatus.COMPLETED and score is not None and score[0] != score[1]:
        winner = team_a if score[0] > score[1] else team_b
    return Match(match_id, team_a=team_a, team_b=team_b, status=status, score=score_obj,
                 winner_id=winner, **kwargs)

"""
Data models for teams, matches, standings and the derived bracket graph.
"""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


TBD = "TBD"


class MatchStatus(enum.Enum):
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value) -> "MatchStatus":
        """Parse a status string; anything unrecognized is treated as scheduled."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.SCHEDULED


class TournamentFormat(enum.Enum):
    ROUND_ROBIN = "round-robin"
    POOL_PLAY_BRACKET = "pool-play-bracket"
    SINGLE_ELIMINATION = "single-elimination"

    @classmethod
    def parse(cls, value) -> "TournamentFormat":
        """Parse a format name. 'pools' is an alias for pool play; unknown names are round robin."""
        if isinstance(value, cls):
            return value
        name = str(value or '').strip().lower().replace('_', '-')
        if name == 'pools':
            return cls.POOL_PLAY_BRACKET
        try:
            return cls(name)
        except ValueError:
            return cls.ROUND_ROBIN


class EdgeState(enum.Enum):
    RESOLVED = "resolved"
    PENDING = "pending"


class Team:
    def __init__(self, id, name, attributes=None):
        self.id = str(id)
        self.name = str(name) if name is not None else self.id
        self.attributes = attributes if attributes else {}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        if not isinstance(data, dict):
            raise ValueError(f"Team record must be a mapping, got {type(data).__name__}")
        team_id = data.get('id', data.get('_id'))
        if team_id is None:
            raise ValueError("Team record has no id")
        name = data.get('name', data.get('teamName')) or str(team_id)
        attributes = {k: v for k, v in data.items() if k not in ('id', '_id', 'name', 'teamName')}
        return cls(team_id, name, attributes)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name}

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name})"


@dataclass(frozen=True)
class Score:
    for_a: int
    for_b: int

    @classmethod
    def from_dict(cls, data) -> Optional["Score"]:
        """Build a score from {'forA', 'forB'} or the legacy {'teamA', 'teamB'} shape."""
        if not isinstance(data, dict):
            return None
        for_a = data.get('forA', data.get('teamA'))
        for_b = data.get('forB', data.get('teamB'))
        points = []
        for value in (for_a, for_b):
            if value is None or isinstance(value, bool):
                return None
            if isinstance(value, float) and not value.is_integer():
                return None
            try:
                points.append(int(value))
            except (TypeError, ValueError):
                return None
        return cls(*points)

    def to_dict(self) -> Dict[str, int]:
        return {'forA': self.for_a, 'forB': self.for_b}


def _optional_int(value) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_id(value) -> Optional[str]:
    if value is None or value == '':
        return None
    if isinstance(value, dict):
        # Populated references from the API carry the id under '_id' or 'id'
        value = value.get('_id', value.get('id'))
        if value is None:
            return None
    return str(value)


class Match:
    def __init__(self, id, team_a=None, team_b=None, status=MatchStatus.SCHEDULED,
                 score: Optional[Score] = None, winner_id=None, round: int = 1,
                 round_name: Optional[str] = None, bracket_position: Optional[int] = None,
                 match_number: Optional[int] = None, parent_match_a_id=None,
                 parent_match_b_id=None, pool=None, start_time=None, field_name=None):
        self.id = str(id)
        self.team_a = team_a
        self.team_b = team_b
        self.status = MatchStatus.parse(status)
        self.score = score
        self.winner_id = winner_id
        self.round = round if round and round > 0 else 1
        self.round_name = str(round_name) if round_name not in (None, '') else f"Round {self.round}"
        self.bracket_position = bracket_position
        self.match_number = match_number
        self.parent_match_a_id = parent_match_a_id
        self.parent_match_b_id = parent_match_b_id
        self.pool = pool
        self.start_time = start_time
        self.field_name = field_name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Match":
        """Parse a match record using the camelCase keys of the match API."""
        if not isinstance(data, dict):
            raise ValueError(f"Match record must be a mapping, got {type(data).__name__}")
        match_id = _optional_id(data.get('id', data.get('_id')))
        if match_id is None:
            raise ValueError("Match record has no id")
        pool = data.get('pool')
        return cls(
            match_id,
            team_a=_optional_id(data.get('teamA', data.get('teamAId'))),
            team_b=_optional_id(data.get('teamB', data.get('teamBId'))),
            status=data.get('status', MatchStatus.SCHEDULED.value),
            score=Score.from_dict(data.get('score')),
            winner_id=_optional_id(data.get('winnerId', data.get('winnerTeamId'))),
            round=_optional_int(data.get('round')) or 1,
            round_name=data.get('roundName'),
            bracket_position=_optional_int(data.get('bracketPosition')),
            match_number=_optional_int(data.get('matchNumber')),
            parent_match_a_id=_optional_id(data.get('parentMatchAId')),
            parent_match_b_id=_optional_id(data.get('parentMatchBId')),
            pool=str(pool) if pool not in (None, '') else None,
            start_time=data.get('startTime'),
            field_name=data.get('fieldName'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'teamA': self.team_a,
            'teamB': self.team_b,
            'status': self.status.value,
            'round': self.round,
            'roundName': self.round_name,
        }
        optional = {
            'score': self.score.to_dict() if self.score else None,
            'winnerId': self.winner_id,
            'bracketPosition': self.bracket_position,
            'matchNumber': self.match_number,
            'parentMatchAId': self.parent_match_a_id,
            'parentMatchBId': self.parent_match_b_id,
            'pool': self.pool,
            'startTime': self.start_time,
            'fieldName': self.field_name,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @property
    def is_completed(self) -> bool:
        return self.status is MatchStatus.COMPLETED

    @property
    def has_result(self) -> bool:
        """Completed and scored; the only matches that count toward standings."""
        return self.is_completed and self.score is not None

    @property
    def is_tie(self) -> bool:
        return self.score is not None and self.score.for_a == self.score.for_b

    @property
    def effective_winner(self) -> Optional[str]:
        """The winner id, only when the match is completed and the id names one of its teams."""
        if not self.is_completed or self.winner_id is None:
            return None
        if self.winner_id not in (self.team_a, self.team_b):
            return None
        return self.winner_id

    @property
    def parent_ids(self):
        return [p for p in (self.parent_match_a_id, self.parent_match_b_id) if p is not None]

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round}, teams=({self.team_a}, {self.team_b}), "
                f"status={self.status.value})")


@dataclass
class Standing:
    team_id: str
    team_name: str
    wins: int = 0
    losses: int = 0
    draws: int = 0
    points_for: int = 0
    points_against: int = 0
    matches_played: int = 0
    pool: Optional[str] = None

    @property
    def point_diff(self) -> int:
        return self.points_for - self.points_against

    def to_dict(self) -> Dict[str, Any]:
        return {
            'teamId': self.team_id,
            'teamName': self.team_name,
            'wins': self.wins,
            'losses': self.losses,
            'draws': self.draws,
            'pointsFor': self.points_for,
            'pointsAgainst': self.points_against,
            'pointDiff': self.point_diff,
            'matchesPlayed': self.matches_played,
            'pool': self.pool,
        }


@dataclass(frozen=True)
class MatchSlot:
    """A concrete scheduled, ongoing or completed match."""
    match: Match
    round: int
    round_name: str
    index: int
    team_a_name: str = TBD
    team_b_name: str = TBD
    team_a_winner: bool = False
    team_b_winner: bool = False
    is_final: bool = False

    @property
    def key(self) -> str:
        return f"match-{self.match.id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'type': 'final' if self.is_final else 'match',
            'round': self.round,
            'roundName': self.round_name,
            'index': self.index,
            'matchId': self.match.id,
            'status': self.match.status.value,
            'teamA': self.team_a_name,
            'teamB': self.team_b_name,
            'score': self.match.score.to_dict() if self.match.score else None,
            'teamAWinner': self.team_a_winner,
            'teamBWinner': self.team_b_winner,
            'pool': self.match.pool,
            'startTime': self.match.start_time,
        }


@dataclass(frozen=True)
class EmptySlot:
    """A future round position whose teams are not known yet."""
    round: int
    round_name: str
    index: int

    @property
    def key(self) -> str:
        return f"empty-{self.round}-{self.index}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'type': 'empty',
            'round': self.round,
            'roundName': self.round_name,
            'index': self.index,
        }


@dataclass(frozen=True)
class ChampionSlot:
    team_name: str = TBD
    final_match_id: Optional[str] = None

    @property
    def key(self) -> str:
        if self.final_match_id is None:
            return "champion-tbd"
        return f"champion-{self.final_match_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {'key': self.key, 'type': 'champion', 'teamName': self.team_name}


Slot = Union[MatchSlot, EmptySlot, ChampionSlot]


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    state: EdgeState = EdgeState.PENDING
    projected: bool = False
    animated: bool = False

    @property
    def key(self) -> str:
        return f"edge-{self.source}-{self.target}"

    @property
    def is_resolved(self) -> bool:
        return self.state is EdgeState.RESOLVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'source': self.source,
            'target': self.target,
            'state': self.state.value,
            'projected': self.projected,
            'animated': self.animated,
        }


@dataclass
class BracketProjection:
    """Slots and edges of a projected bracket, in display order."""
    slots: List[Slot] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def extend(self, other: "BracketProjection") -> None:
        self.slots.extend(other.slots)
        self.edges.extend(other.edges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'slots': [slot.to_dict() for slot in self.slots],
            'edges': [edge.to_dict() for edge in self.edges],
        }

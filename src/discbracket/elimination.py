"""
Single elimination bracket projection.

Turns the elimination-stage matches of a tournament into bracket slots and
the edges that carry each winner into the next round, then fills the rounds
that have not been scheduled yet with placeholders up to the champion.
"""
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .models import (
    TBD,
    BracketProjection,
    ChampionSlot,
    Edge,
    EdgeState,
    EmptySlot,
    Match,
    MatchSlot,
    MatchStatus,
    Team,
)

logger = logging.getLogger(__name__)

# Round names counted back from the last round of the bracket
ROUND_NAME_LADDER = ["Finals", "Semifinals", "Quarterfinals", "Round of 16", "Round of 32"]

_FINAL_ROUND_PATTERN = re.compile(r"(?<!semi)(?<!quarter)(?<!semi-)(?<!quarter-)(?<!semi )(?<!quarter )\bfinals?\b",
                                  re.IGNORECASE)


@dataclass
class BracketRound:
    """Matches sharing a (round, round_name) pair, in bracket order."""
    round: int
    round_name: str
    matches: List[Match] = field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return is_final_round_name(self.round_name)


def get_round_name(round_number: int, total_rounds: int) -> str:
    """Get the name of a round from its distance to the last round."""
    rounds_from_final = total_rounds - round_number
    if 0 <= rounds_from_final < len(ROUND_NAME_LADDER):
        return ROUND_NAME_LADDER[rounds_from_final]
    return f"Round {round_number}"


def calculate_total_rounds(num_teams: int) -> int:
    """Rounds needed to get from num_teams down to one champion."""
    if num_teams < 2:
        return 0
    return math.ceil(math.log2(num_teams))


def is_final_round_name(round_name: Optional[str]) -> bool:
    """
    True when the round name marks the championship round.

    'Finals', 'Final' and 'Grand Final' qualify; 'Semifinals' and
    'Quarter-Finals' do not.
    """
    if not round_name:
        return False
    return _FINAL_ROUND_PATTERN.search(round_name) is not None


def _match_order_key(match: Match) -> Tuple[bool, int]:
    position = match.bracket_position if match.bracket_position is not None else match.match_number
    return (position is None, position if position is not None else 0)


def group_matches_by_round(matches: List[Match]) -> List[BracketRound]:
    """
    Group matches into rounds by (round, round_name), rounds ascending.

    Within a round, matches are ordered by bracket position, then match
    number, then input order.
    """
    rounds: Dict[Tuple[int, str], BracketRound] = {}
    seen_ids = set()
    for match in matches:
        if match.id in seen_ids:
            logger.debug("Skipping duplicate match id %s", match.id)
            continue
        seen_ids.add(match.id)
        key = (match.round, match.round_name)
        if key not in rounds:
            rounds[key] = BracketRound(round=match.round, round_name=match.round_name)
        rounds[key].matches.append(match)

    ordered = sorted(rounds.values(), key=lambda r: r.round)
    for bracket_round in ordered:
        bracket_round.matches.sort(key=_match_order_key)
    return ordered


def edge_state_for(match: Match) -> EdgeState:
    """Resolved once the source match is completed with a winner."""
    if match.effective_winner is not None:
        return EdgeState.RESOLVED
    return EdgeState.PENDING


def make_match_slot(match: Match, round_name: str, index: int, team_names: Dict[str, str],
                    is_final: bool = False) -> MatchSlot:
    winner = match.effective_winner
    return MatchSlot(
        match=match,
        round=match.round,
        round_name=round_name,
        index=index,
        team_a_name=team_names.get(match.team_a, TBD),
        team_b_name=team_names.get(match.team_b, TBD),
        team_a_winner=winner is not None and winner == match.team_a,
        team_b_winner=winner is not None and winner == match.team_b,
        is_final=is_final,
    )


def _edge_from_match(match: Match, target: str, projected: bool = False) -> Edge:
    return Edge(
        source=f"match-{match.id}",
        target=target,
        state=edge_state_for(match),
        projected=projected,
        animated=match.status is MatchStatus.ONGOING,
    )


def _find_final_rounds(rounds: List[BracketRound], total_rounds: int) -> List[BracketRound]:
    named = [r for r in rounds if r.is_final]
    if named:
        return named
    # Unnamed data: a lone match in the last possible round is the final
    if rounds and total_rounds > 0:
        last = rounds[-1]
        if last.round >= total_rounds and len(last.matches) == 1:
            return [last]
    return []


def infer_explicit_edges(rounds: List[BracketRound]) -> List[Edge]:
    """Edges from the parentMatchAId/parentMatchBId links recorded on each match."""
    matches_by_id = {m.id: m for r in rounds for m in r.matches}
    edges = []
    for bracket_round in rounds:
        for match in bracket_round.matches:
            for parent_id in match.parent_ids:
                parent = matches_by_id.get(parent_id)
                if parent is None:
                    logger.debug("Match %s references unknown parent %s", match.id, parent_id)
                    continue
                edges.append(_edge_from_match(parent, f"match-{match.id}"))
    return edges


def infer_positional_edges(rounds: List[BracketRound]) -> List[Edge]:
    """
    Edges by position: match i of round r feeds match i // 2 of round r + 1.

    A round with no single round r + 1 to feed (a gap, or two groups sharing
    that number) is left disconnected.
    """
    rounds_by_number: Dict[int, List[BracketRound]] = {}
    for bracket_round in rounds:
        rounds_by_number.setdefault(bracket_round.round, []).append(bracket_round)

    edges = []
    for bracket_round in rounds:
        next_rounds = rounds_by_number.get(bracket_round.round + 1, [])
        if len(next_rounds) != 1:
            if bracket_round.round + 1 <= max(rounds_by_number):
                logger.debug("No unique round %d to feed from %s", bracket_round.round + 1,
                             bracket_round.round_name)
            continue
        next_matches = next_rounds[0].matches
        for index, match in enumerate(bracket_round.matches):
            next_index = index // 2
            if next_index < len(next_matches):
                edges.append(_edge_from_match(match, f"match-{next_matches[next_index].id}"))
    return edges


def project_placeholders(last_round_matches: List[Match], last_round: int, total_rounds: int,
                         num_teams: int) -> BracketProjection:
    """
    Synthesize empty slots for rounds last_round + 1 .. total_rounds.

    Each placeholder round holds ceil(prior / 2) slots, where prior starts as
    the match count of the last concrete round (or the team count when nothing
    has been scheduled). The synthesized finals feed a TBD champion.
    """
    projection = BracketProjection()
    if total_rounds <= last_round:
        return projection

    prior_count = len(last_round_matches) if last_round_matches else num_teams
    # Sources feeding the next placeholder round: (slot key, source match or None)
    sources = [(f"match-{m.id}", m) for m in last_round_matches]

    rounds_remaining = total_rounds - last_round
    round_number = last_round
    while rounds_remaining > 0:
        round_number += 1
        rounds_remaining -= 1
        slot_count = max(1, math.ceil(prior_count / 2))
        round_name = get_round_name(round_number, total_rounds)
        round_slots = [EmptySlot(round=round_number, round_name=round_name, index=i) for i in range(slot_count)]
        projection.slots.extend(round_slots)

        for index, (source_key, source_match) in enumerate(sources):
            target = round_slots[index // 2].key if index // 2 < slot_count else None
            if target is None:
                continue
            if source_match is not None:
                projection.edges.append(_edge_from_match(source_match, target, projected=True))
            else:
                projection.edges.append(Edge(source=source_key, target=target, projected=True))

        sources = [(slot.key, None) for slot in round_slots]
        prior_count = slot_count

    champion = ChampionSlot()
    projection.slots.append(champion)
    for source_key, _ in sources:
        projection.edges.append(Edge(source=source_key, target=champion.key, projected=True))
    return projection


def _champion_for(final_match: Match, team_names: Dict[str, str]) -> Tuple[ChampionSlot, Edge]:
    winner = final_match.effective_winner
    team_name = team_names.get(winner, TBD) if winner is not None else TBD
    champion = ChampionSlot(team_name=team_name, final_match_id=final_match.id)
    return champion, _edge_from_match(final_match, champion.key)


def project_elimination(teams: List[Team], matches: List[Match],
                        with_placeholders: bool = True) -> BracketProjection:
    """
    Project an elimination bracket from the matches scheduled so far.

    Returns the match slots round by round, the edges between them, the
    champion slot and, when with_placeholders is set, the empty rounds still
    to be scheduled.
    """
    projection = BracketProjection()
    if not teams:
        return projection

    team_names = {team.id: team.name for team in teams}
    total_rounds = calculate_total_rounds(len(teams))
    rounds = group_matches_by_round(matches)
    # Without placeholders the scheduled rounds are the whole bracket stage
    last_scheduled = total_rounds if with_placeholders or not rounds else rounds[-1].round
    final_rounds = _find_final_rounds(rounds, last_scheduled)
    final_keys = {(r.round, r.round_name) for r in final_rounds}

    champion_parts = []
    for bracket_round in rounds:
        is_final = (bracket_round.round, bracket_round.round_name) in final_keys
        for index, match in enumerate(bracket_round.matches):
            projection.slots.append(make_match_slot(match, bracket_round.round_name, index, team_names, is_final))
            if is_final:
                champion_parts.append(_champion_for(match, team_names))

    has_explicit_links = any(m.parent_ids for r in rounds for m in r.matches)
    if has_explicit_links:
        projection.edges.extend(infer_explicit_edges(rounds))
    else:
        projection.edges.extend(infer_positional_edges(rounds))

    for champion, edge in champion_parts:
        projection.slots.append(champion)
        projection.edges.append(edge)

    if with_placeholders and not final_rounds:
        last_round = rounds[-1].round if rounds else 0
        last_round_matches = [m for r in rounds if r.round == last_round for m in r.matches]
        projection.extend(project_placeholders(last_round_matches, last_round, total_rounds, len(teams)))

    return projection

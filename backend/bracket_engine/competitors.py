"""
Competitor slots as a tagged union.

A bracket slot holds either a user (SOLO tournaments) or a team (TEAM
tournaments). Match rows persist these in separate FK columns; this module is
the only place that knows which column pair belongs to which kind, so the
generator, advancer and settlement engine work with Competitor values only.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

from bracket_engine.models.match import Match
from bracket_engine.models.registration import Registration
from bracket_engine.models.tournament import TournamentType


class Side(str, Enum):
    A = "A"
    B = "B"


@dataclass(frozen=True)
class UserCompetitor:
    user_id: int

    @property
    def id(self) -> int:
        return self.user_id


@dataclass(frozen=True)
class TeamCompetitor:
    team_id: int

    @property
    def id(self) -> int:
        return self.team_id


Competitor = Union[UserCompetitor, TeamCompetitor]

_SLOT_COLUMNS: Dict[TournamentType, Dict[str, str]] = {
    TournamentType.SOLO: {Side.A: "player_a_id", Side.B: "player_b_id", "winner": "winner_user_id"},
    TournamentType.TEAM: {Side.A: "team_a_id", Side.B: "team_b_id", "winner": "winner_team_id"},
}


def _columns_for(competitor: Competitor) -> Dict[str, str]:
    if isinstance(competitor, UserCompetitor):
        return _SLOT_COLUMNS[TournamentType.SOLO]
    return _SLOT_COLUMNS[TournamentType.TEAM]


def make_competitor(tournament_type: str, ref_id: Optional[int]) -> Optional[Competitor]:
    """Wrap a raw user/team id in the competitor kind used by the tournament type."""
    if ref_id is None:
        return None
    if tournament_type == TournamentType.SOLO:
        return UserCompetitor(ref_id)
    if tournament_type == TournamentType.TEAM:
        return TeamCompetitor(ref_id)
    raise ValueError(f"Unknown tournament type: {tournament_type}")


def competitor_from_registration(tournament_type: str, registration: Registration) -> Optional[Competitor]:
    """SOLO registrations enter as their user, TEAM registrations as their team."""
    if tournament_type == TournamentType.SOLO:
        return make_competitor(tournament_type, registration.user_id)
    return make_competitor(tournament_type, registration.team_id)


def slot_side(match_number: int) -> Side:
    """Odd match numbers feed the parent's slot A, even ones slot B."""
    return Side.A if match_number % 2 == 1 else Side.B


def parent_match_number(match_number: int) -> int:
    return (match_number + 1) // 2


def read_slot(match: Match, tournament_type: str, side: Side) -> Optional[Competitor]:
    column = _SLOT_COLUMNS[TournamentType(tournament_type)][side]
    return make_competitor(tournament_type, getattr(match, column))


def write_slot(match: Match, side: Side, competitor: Optional[Competitor]) -> None:
    if competitor is None:
        return
    setattr(match, _columns_for(competitor)[side], competitor.id)


def read_winner(match: Match, tournament_type: str) -> Optional[Competitor]:
    column = _SLOT_COLUMNS[TournamentType(tournament_type)]["winner"]
    return make_competitor(tournament_type, getattr(match, column))


def write_winner(match: Match, competitor: Competitor) -> None:
    setattr(match, _columns_for(competitor)["winner"], competitor.id)


def other_competitor(match: Match, tournament_type: str, competitor: Competitor) -> Optional[Competitor]:
    """The slot occupant that is not `competitor` (the runner-up of a final)."""
    slot_a = read_slot(match, tournament_type, Side.A)
    if slot_a == competitor:
        return read_slot(match, tournament_type, Side.B)
    return slot_a

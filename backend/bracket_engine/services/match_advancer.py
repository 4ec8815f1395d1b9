"""
Match results: completing a match advances its winner into the next round.

The winner of match N in round R is written into match ceil(N / 2) of round
R + 1, slot A when N is odd and slot B when N is even. Completing the match and
filling the downstream slot are one unit of work; if either write fails, both
roll back. A match with no downstream match is the final, and its completion
makes the tournament eligible for settlement.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from bracket_engine.auth import Actor, ensure_can_manage
from bracket_engine.competitors import (
    Side,
    make_competitor,
    parent_match_number,
    read_slot,
    read_winner,
    slot_side,
    write_slot,
    write_winner,
)
from bracket_engine.errors import InvalidResult, InvalidState, NotFound
from bracket_engine.models.dispute import Dispute
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.utils.tournament_guards import get_tournament_or_404, require_ongoing

logger = logging.getLogger(__name__)


@dataclass
class AdvancementResult:
    match: Match
    next_match: Optional[Match]

    @property
    def is_final(self) -> bool:
        return self.next_match is None


def find_next_match(session: Session, match: Match) -> Optional[Match]:
    """The match this one feeds, or None for the final."""
    return session.exec(
        select(Match).where(
            Match.tournament_id == match.tournament_id,
            Match.round == match.round + 1,
            Match.match_number == parent_match_number(match.match_number),
        )
    ).first()


def apply_advancement(session: Session, match: Match, tournament_type: str) -> Optional[Match]:
    """
    Write the winner of a completed match into its downstream slot.

    Does not commit; the caller owns the unit of work.
    Idempotent: writing the same winner twice leaves the same state.

    Returns:
        The downstream match, or None when `match` is the final

    Raises:
        InvalidState: downstream slot already holds a different competitor
    """
    winner = read_winner(match, tournament_type)
    if winner is None or match.status != MatchStatus.COMPLETED:
        raise InvalidState(f"Match {match.id} has no result to advance")

    next_match = find_next_match(session, match)
    if next_match is None:
        return None

    side = slot_side(match.match_number)
    occupant = read_slot(next_match, tournament_type, side)
    if occupant is not None and occupant != winner:
        raise InvalidState(
            f"Round {next_match.round} match {next_match.match_number} slot {side.value} is already taken"
        )

    write_slot(next_match, side, winner)
    session.add(next_match)
    return next_match


def _lock_match(session: Session, match_id: int):
    """
    Load a match together with its row-locked tournament.

    The match is re-read after the lock so a concurrent bracket regeneration
    is either fully visible or not at all.
    """
    match = session.get(Match, match_id)
    if not match:
        raise NotFound("Match not found")

    tournament = get_tournament_or_404(session, match.tournament_id, for_update=True)
    match = session.exec(
        select(Match).where(Match.id == match_id).execution_options(populate_existing=True)
    ).first()
    if not match:
        raise NotFound("Match not found")
    return match, tournament


def submit_result(
    session: Session,
    match_id: int,
    actor: Actor,
    score_a: int,
    score_b: int,
    winner_id: int,
) -> AdvancementResult:
    """
    Record a match result and advance the winner.

    `winner_id` is a user id in SOLO tournaments and a team id in TEAM ones.

    Raises:
        NotFound: match (or its tournament) does not exist
        Forbidden: actor is not the host or an admin
        InvalidState: tournament not ONGOING, match already completed, or a
            competitor slot is still empty
        InvalidResult: negative score, or winner is neither competitor
    """
    match, tournament = _lock_match(session, match_id)
    ensure_can_manage(actor, tournament)
    require_ongoing(tournament, "submit results")

    if match.status == MatchStatus.COMPLETED:
        raise InvalidState("Result already submitted for this match")

    slot_a = read_slot(match, tournament.type, Side.A)
    slot_b = read_slot(match, tournament.type, Side.B)
    if slot_a is None or slot_b is None:
        raise InvalidState("Match is still waiting for competitors")

    if score_a < 0 or score_b < 0:
        raise InvalidResult("Scores cannot be negative")

    winner = make_competitor(tournament.type, winner_id)
    if winner not in (slot_a, slot_b):
        raise InvalidResult("Winner must be one of the match competitors")

    try:
        match.score_a = score_a
        match.score_b = score_b
        write_winner(match, winner)
        match.status = MatchStatus.COMPLETED
        match.completed_at = datetime.utcnow()
        session.add(match)

        next_match = apply_advancement(session, match, tournament.type)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(match)
    if next_match is not None:
        session.refresh(next_match)
        logger.info(
            "Match %d (tournament %d, round %d) won by %s; advanced to round %d match %d",
            match.id,
            tournament.id,
            match.round,
            winner,
            next_match.round,
            next_match.match_number,
        )
    else:
        logger.info("Final match %d of tournament %d won by %s", match.id, tournament.id, winner)

    return AdvancementResult(match=match, next_match=next_match)


def upload_proof(session: Session, match_id: int, actor: Actor, proof_url: str) -> Match:
    """Attach a proof-of-result URL. Does not change match status."""
    match = session.get(Match, match_id)
    if not match:
        raise NotFound("Match not found")

    tournament = get_tournament_or_404(session, match.tournament_id)
    ensure_can_manage(actor, tournament)

    match.proof_url = proof_url
    session.add(match)
    session.commit()
    session.refresh(match)
    return match


def get_match_with_disputes(session: Session, match_id: int) -> Tuple[Match, List[Dispute]]:
    match = session.get(Match, match_id)
    if not match:
        raise NotFound("Match not found")

    disputes = session.exec(
        select(Dispute).where(Dispute.match_id == match_id).order_by(Dispute.created_at, Dispute.id)
    ).all()
    return match, list(disputes)

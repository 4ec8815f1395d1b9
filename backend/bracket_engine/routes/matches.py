"""
Bracket and match endpoints: generation, results, proof, settlement.

Reads are open to anyone; mutations require the tournament host or an admin
(identified by the X-Actor-User-Id header).
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, HttpUrl, field_validator
from sqlmodel import Session

from bracket_engine.auth import Actor, get_current_actor
from bracket_engine.database import get_session
from bracket_engine.errors import BracketEngineError
from bracket_engine.models.dispute import Dispute
from bracket_engine.models.match import Match
from bracket_engine.services.bracket_generator import (
    SeedingRandom,
    generate_bracket,
    list_tournament_matches,
)
from bracket_engine.services.ledger_service import LedgerService, get_ledger
from bracket_engine.services.match_advancer import get_match_with_disputes, submit_result, upload_proof
from bracket_engine.services.settlement_engine import complete_tournament
from bracket_engine.utils.tournament_guards import get_tournament_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


def get_seeding_rng() -> Optional[SeedingRandom]:
    """Randomness used to seed brackets; None means the service default."""
    return None


class MatchResultSubmit(BaseModel):
    score_a: int
    score_b: int
    winner_id: int  # User id (SOLO) or team id (TEAM)

    @field_validator("score_a", "score_b")
    @classmethod
    def validate_score(cls, v):
        if v < 0:
            raise ValueError("score cannot be negative")
        return v


class ProofUpload(BaseModel):
    proof_url: HttpUrl


class MatchState(BaseModel):
    id: int
    tournament_id: int
    round: int
    match_number: int
    player_a_id: Optional[int] = None
    player_b_id: Optional[int] = None
    team_a_id: Optional[int] = None
    team_b_id: Optional[int] = None
    winner_user_id: Optional[int] = None
    winner_team_id: Optional[int] = None
    score_a: int
    score_b: int
    status: str
    is_bye: bool
    proof_url: Optional[str] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DisputeState(BaseModel):
    id: int
    raised_by_id: int
    reason: str
    evidence_url: Optional[str] = None
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MatchDetail(MatchState):
    disputes: List[DisputeState] = []


class MatchListResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: List[MatchState]


class MatchDetailResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: MatchDetail


class MatchResultResponse(BaseModel):
    success: bool = True
    message: str
    data: MatchState
    next_match: Optional[MatchState] = None
    is_final: bool = False


class MatchProofResponse(BaseModel):
    success: bool = True
    message: str
    data: MatchState


class CreditSummary(BaseModel):
    recipient_id: int
    amount: int
    category: str
    memo: str
    metadata: Dict[str, Any]


class SettlementSummary(BaseModel):
    tournament_id: int
    status: str
    host_profit: int
    prize_total: int
    withheld: int
    credits: List[CreditSummary]


class SettlementResponse(BaseModel):
    success: bool = True
    message: str
    data: SettlementSummary


def _match_to_state(m: Match) -> MatchState:
    return MatchState.model_validate(m)


def _match_to_detail(m: Match, disputes: List[Dispute]) -> MatchDetail:
    return MatchDetail(
        **_match_to_state(m).model_dump(),
        disputes=[DisputeState.model_validate(d) for d in disputes],
    )


@router.get("/matches/tournament/{tournament_id}", response_model=MatchListResponse)
def get_matches(tournament_id: int, session: Session = Depends(get_session)) -> MatchListResponse:
    """All matches of a tournament. Stable order: round, match_number."""
    try:
        get_tournament_or_404(session, tournament_id)
    except BracketEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    matches = list_tournament_matches(session, tournament_id)
    return MatchListResponse(data=[_match_to_state(m) for m in matches])


@router.get("/matches/{match_id}", response_model=MatchDetailResponse)
def get_match(match_id: int, session: Session = Depends(get_session)) -> MatchDetailResponse:
    """One match with the disputes raised against it."""
    try:
        match, disputes = get_match_with_disputes(session, match_id)
    except BracketEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MatchDetailResponse(data=_match_to_detail(match, disputes))


@router.post("/matches/tournament/{tournament_id}/generate", response_model=MatchListResponse)
def generate_tournament_bracket(
    tournament_id: int,
    actor: Actor = Depends(get_current_actor),
    rng: Optional[SeedingRandom] = Depends(get_seeding_rng),
    session: Session = Depends(get_session),
) -> MatchListResponse:
    """
    Generate (or regenerate) the single-elimination bracket.

    WARNING: Regeneration deletes the existing bracket and every result recorded on it.
    """
    try:
        matches = generate_bracket(session, tournament_id, actor, rng=rng)
    except BracketEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        session.rollback()
        logger.exception("Generate bracket failed for tournament %d", tournament_id)
        raise HTTPException(status_code=500, detail="Failed to generate bracket")

    total_rounds = max(m.round for m in matches)
    return MatchListResponse(
        message=f"Bracket generated: {total_rounds} rounds",
        data=[_match_to_state(m) for m in matches],
    )


@router.patch("/matches/{match_id}/result", response_model=MatchResultResponse)
def submit_match_result(
    match_id: int,
    payload: MatchResultSubmit,
    actor: Actor = Depends(get_current_actor),
    session: Session = Depends(get_session),
) -> MatchResultResponse:
    """Complete a match and advance its winner into the next round."""
    try:
        result = submit_result(
            session,
            match_id,
            actor,
            score_a=payload.score_a,
            score_b=payload.score_b,
            winner_id=payload.winner_id,
        )
    except BracketEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        session.rollback()
        logger.exception("Submit result failed for match %d", match_id)
        raise HTTPException(status_code=500, detail="Failed to submit result")

    return MatchResultResponse(
        message="Result submitted",
        data=_match_to_state(result.match),
        next_match=_match_to_state(result.next_match) if result.next_match else None,
        is_final=result.is_final,
    )


@router.patch("/matches/{match_id}/proof", response_model=MatchProofResponse)
def upload_match_proof(
    match_id: int,
    payload: ProofUpload,
    actor: Actor = Depends(get_current_actor),
    session: Session = Depends(get_session),
) -> MatchProofResponse:
    try:
        match = upload_proof(session, match_id, actor, str(payload.proof_url))
    except BracketEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        session.rollback()
        logger.exception("Upload proof failed for match %d", match_id)
        raise HTTPException(status_code=500, detail="Failed to upload proof")

    return MatchProofResponse(message="Proof uploaded", data=_match_to_state(match))


@router.post("/matches/tournament/{tournament_id}/complete", response_model=SettlementResponse)
def complete_tournament_and_pay(
    tournament_id: int,
    actor: Actor = Depends(get_current_actor),
    ledger: LedgerService = Depends(get_ledger),
    session: Session = Depends(get_session),
) -> SettlementResponse:
    """Settle the tournament: distribute prizes, credit host profit, mark COMPLETED."""
    try:
        result = complete_tournament(session, tournament_id, actor, ledger=ledger)
    except BracketEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        session.rollback()
        logger.exception("Complete tournament failed for tournament %d", tournament_id)
        raise HTTPException(status_code=500, detail="Failed to complete tournament")

    plan = result.plan
    return SettlementResponse(
        message="Tournament completed and prizes distributed",
        data=SettlementSummary(
            tournament_id=result.tournament.id,
            status=result.tournament.status,
            host_profit=result.tournament.host_profit,
            prize_total=plan.prize_total,
            withheld=plan.withheld,
            credits=[
                CreditSummary(
                    recipient_id=c.recipient_id,
                    amount=c.amount,
                    category=c.category,
                    memo=c.memo,
                    metadata=c.metadata,
                )
                for c in plan.credits
            ],
        ),
    )

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from bracket_engine.database import get_session
from bracket_engine.errors import NotFound
from bracket_engine.models.payout import Payout
from bracket_engine.models.tournament import Tournament
from bracket_engine.utils.tournament_guards import get_tournament_or_404

router = APIRouter()


class PayoutResponse(BaseModel):
    position: int
    amount: int

    model_config = ConfigDict(from_attributes=True)


class TournamentResponse(BaseModel):
    id: int
    name: str
    game: Optional[str] = None
    type: str
    status: str
    host_id: int
    entry_fee: int
    collected: int
    prize_pool: int
    host_profit: int
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TournamentDetail(TournamentResponse):
    payouts: List[PayoutResponse] = []


class TournamentListResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: List[TournamentResponse]


class TournamentDetailResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: TournamentDetail


@router.get("/tournaments", response_model=TournamentListResponse)
def list_tournaments(status: Optional[str] = None, session: Session = Depends(get_session)):
    """List tournaments, optionally filtered by lifecycle status"""
    query = select(Tournament).order_by(Tournament.id)
    if status:
        query = query.where(Tournament.status == status.upper())
    tournaments = session.exec(query).all()
    return TournamentListResponse(data=[TournamentResponse.model_validate(t) for t in tournaments])


@router.get("/tournaments/{tournament_id}", response_model=TournamentDetailResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament with its payout tiers"""
    try:
        tournament = get_tournament_or_404(session, tournament_id)
    except NotFound as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    payouts = session.exec(
        select(Payout).where(Payout.tournament_id == tournament_id).order_by(Payout.position)
    ).all()
    return TournamentDetailResponse(
        data=TournamentDetail(
            **TournamentResponse.model_validate(tournament).model_dump(),
            payouts=[PayoutResponse.model_validate(p) for p in payouts],
        )
    )

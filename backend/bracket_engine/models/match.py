from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.tournament import Tournament


class MatchStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"  # Terminal


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "round", "match_number", name="uq_match_bracket_slot"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round: int  # 1 = first round
    match_number: int  # 1-based within round; parent is ceil(match_number / 2) in round + 1

    # Competitor slots. Only one pair is used, chosen by tournament type;
    # read and write them through bracket_engine.competitors.
    player_a_id: Optional[int] = Field(default=None, foreign_key="user_account.id")
    player_b_id: Optional[int] = Field(default=None, foreign_key="user_account.id")
    team_a_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team_b_id: Optional[int] = Field(default=None, foreign_key="team.id")
    winner_user_id: Optional[int] = Field(default=None, foreign_key="user_account.id")
    winner_team_id: Optional[int] = Field(default=None, foreign_key="team.id")

    score_a: int = Field(default=0)
    score_b: int = Field(default=0)
    status: MatchStatus = Field(default=MatchStatus.SCHEDULED, sa_column=Column(String, nullable=False))
    is_bye: bool = Field(default=False)  # Auto-completed at generation against an empty slot
    proof_url: Optional[str] = Field(default=None)

    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    tournament: "Tournament" = Relationship(back_populates="matches")

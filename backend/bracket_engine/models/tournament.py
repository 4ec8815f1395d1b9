from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.match import Match
    from bracket_engine.models.payout import Payout
    from bracket_engine.models.registration import Registration


class TournamentType(str, Enum):
    SOLO = "SOLO"
    TEAM = "TEAM"


class TournamentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    game: Optional[str] = None
    type: TournamentType = Field(sa_column=Column(String, nullable=False))
    status: TournamentStatus = Field(
        default=TournamentStatus.SCHEDULED, sa_column=Column(String, nullable=False, index=True)
    )
    host_id: int = Field(foreign_key="user_account.id", index=True)

    # Money in the smallest currency unit
    entry_fee: int = Field(default=0)
    collected: int = Field(default=0)  # Entry-fee revenue
    prize_pool: int = Field(default=0)  # Committed payout budget
    host_profit: int = Field(default=0)  # Written once, at settlement

    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    matches: List["Match"] = Relationship(back_populates="tournament")
    payouts: List["Payout"] = Relationship(back_populates="tournament")
    registrations: List["Registration"] = Relationship(back_populates="tournament")

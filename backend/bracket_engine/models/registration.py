from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.tournament import Tournament


class RegistrationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Registration(SQLModel, table=True):
    """A participant unit for a tournament. Written by the registration flow; read-only here."""

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user_account.id", index=True)  # SOLO
    team_id: Optional[int] = Field(default=None, foreign_key="team.id", index=True)  # TEAM
    status: RegistrationStatus = Field(
        default=RegistrationStatus.PENDING, sa_column=Column(String, nullable=False)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)

    tournament: "Tournament" = Relationship(back_populates="registrations")

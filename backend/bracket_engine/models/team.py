from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel


class TeamRole(str, Enum):
    CAPTAIN = "CAPTAIN"
    MEMBER = "MEMBER"


class Team(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    captain_id: int = Field(foreign_key="user_account.id", index=True)
    max_members: int = Field(default=5)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    members: List["TeamMember"] = Relationship(back_populates="team")


class TeamMember(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("team_id", "user_id", name="uq_team_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    user_id: int = Field(foreign_key="user_account.id")
    role: TeamRole = Field(default=TeamRole.MEMBER, sa_column=Column(String, nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow)

    team: "Team" = Relationship(back_populates="members")

from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.tournament import Tournament


class Payout(SQLModel, table=True):
    """Declared prize tier. Created at tournament setup; read-only here."""

    __table_args__ = (SAUniqueConstraint("tournament_id", "position", name="uq_payout_position"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    position: int  # 1-based finishing position
    amount: int  # Smallest currency unit

    tournament: "Tournament" = Relationship(back_populates="payouts")

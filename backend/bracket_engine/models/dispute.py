from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Dispute(SQLModel, table=True):
    """Result dispute raised against a match. Resolution happens elsewhere; read-only here."""

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    raised_by_id: int = Field(foreign_key="user_account.id")
    reason: str
    evidence_url: Optional[str] = None
    status: str = Field(default="OPEN")  # OPEN | RESOLVED | REJECTED
    created_at: datetime = Field(default_factory=datetime.utcnow)

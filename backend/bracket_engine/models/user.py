from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel


class UserRole(str, Enum):
    PLAYER = "PLAYER"
    HOST = "HOST"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"


class User(SQLModel, table=True):
    """Platform account. Owned by the auth service; read here to identify callers."""

    __tablename__ = "user_account"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    role: UserRole = Field(default=UserRole.PLAYER, sa_column=Column(String, nullable=False))
    is_banned: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)

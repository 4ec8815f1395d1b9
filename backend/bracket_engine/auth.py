"""
Caller identity and tournament management permissions.

Authentication happens upstream; requests arrive with the authenticated user id
in the X-Actor-User-Id header. Only hosts of a tournament and admin-class roles
may mutate its bracket or settle it.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from bracket_engine.config import get_admin_roles
from bracket_engine.database import get_session
from bracket_engine.errors import Forbidden
from bracket_engine.models.tournament import Tournament
from bracket_engine.models.user import User


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str
    is_banned: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role.upper() in get_admin_roles()


def get_current_actor(
    actor_user_id: Optional[int] = Header(default=None, alias="X-Actor-User-Id"),
    session: Session = Depends(get_session),
) -> Actor:
    user = session.get(User, actor_user_id) if actor_user_id is not None else None
    if not user:
        raise HTTPException(status_code=401, detail="Authentication required")
    return Actor(user_id=user.id, role=user.role, is_banned=user.is_banned)


def ensure_can_manage(actor: Actor, tournament: Tournament) -> None:
    """Raise Forbidden unless the actor hosts the tournament or is an admin."""
    if actor.is_banned:
        raise Forbidden("Account is banned")
    if tournament.host_id != actor.user_id and not actor.is_admin:
        raise Forbidden("Access denied")

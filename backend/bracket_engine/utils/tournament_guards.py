"""
Tournament Guards

Reusable checks shared by the bracket, advancement and settlement services:
- Tournament lookup (optionally row-locked)
- Forward-only lifecycle state requirements
"""

from sqlmodel import Session, select

from bracket_engine.errors import InvalidState, NotFound
from bracket_engine.models.tournament import Tournament, TournamentStatus


def get_tournament_or_404(session: Session, tournament_id: int, for_update: bool = False) -> Tournament:
    """
    Get a tournament or raise NotFound.

    Args:
        session: Database session
        tournament_id: Tournament ID
        for_update: Lock the row (SELECT ... FOR UPDATE) for the rest of the
            transaction. Bracket regeneration and result submission both lock,
            so they serialize per tournament. SQLite ignores the lock clause.

    Raises:
        NotFound: Tournament does not exist
    """
    statement = select(Tournament).where(Tournament.id == tournament_id)
    if for_update:
        statement = statement.with_for_update()
    tournament = session.exec(statement).first()

    if not tournament:
        raise NotFound("Tournament not found")

    return tournament


def require_ongoing(tournament: Tournament, action: str) -> Tournament:
    """
    Require that a tournament is ONGOING, otherwise raise InvalidState.

    Raises:
        InvalidState: Tournament is SCHEDULED or already COMPLETED
    """
    if tournament.status != TournamentStatus.ONGOING:
        raise InvalidState(f"Tournament must be ONGOING to {action} (status is {TournamentStatus(tournament.status).value})")
    return tournament

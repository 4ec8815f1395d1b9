"""
Single-elimination bracket generation.

Turns the confirmed registrations of an ONGOING tournament into a complete
match tree: round 1 holds bracket_size / 2 matches, each later round half as
many, ending at a single final. Seeding is a uniform shuffle (no skill-based
seeding); the randomness source is injectable so tests can fix the order.

Byes are spread so that no first-round pair is bye-vs-bye. A participant drawn
against a bye wins that match at creation time and is placed straight into its
round-2 slot.

Regeneration deletes the previous bracket, including any recorded results.
"""
import logging
import random
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import delete
from sqlmodel import Session, select

from bracket_engine.auth import Actor, ensure_can_manage
from bracket_engine.competitors import (
    Competitor,
    Side,
    competitor_from_registration,
    parent_match_number,
    slot_side,
    write_slot,
    write_winner,
)
from bracket_engine.errors import InsufficientParticipants
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.registration import Registration, RegistrationStatus
from bracket_engine.utils.tournament_guards import get_tournament_or_404, require_ongoing

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2

_default_rng = random.Random()


class SeedingRandom(Protocol):
    def shuffle(self, x: list) -> None: ...


def bracket_dimensions(participant_count: int) -> Tuple[int, int]:
    """Return (total_rounds, bracket_size) with total_rounds = ceil(log2(n))."""
    if participant_count < MIN_PARTICIPANTS:
        raise ValueError(f"Need at least {MIN_PARTICIPANTS} participants, got {participant_count}")
    # (n - 1).bit_length() == ceil(log2(n)) for n >= 2, without float rounding
    total_rounds = (participant_count - 1).bit_length()
    return total_rounds, 2**total_rounds


def pad_with_byes(participants: Sequence[Competitor], bracket_size: int) -> List[Optional[Competitor]]:
    """
    Pad the seeded list to bracket_size with byes (None).

    The first (bracket_size - n) participants are each followed by a bye; the
    rest pair with each other. Since n > bracket_size / 2 there are never more
    byes than participants, so consecutive pairs are never bye-vs-bye:
      5 in an 8-bracket -> [p1, -, p2, -, p3, -, p4, p5]
    """
    bye_count = bracket_size - len(participants)
    padded: List[Optional[Competitor]] = []
    for index, competitor in enumerate(participants):
        padded.append(competitor)
        if index < bye_count:
            padded.append(None)
    return padded


def build_bracket(tournament_id: int, seeded: Sequence[Competitor]) -> List[Match]:
    """
    Build (unsaved) Match rows for a seeded participant list.

    Returns:
        Matches ordered by (round, match_number)
    """
    total_rounds, bracket_size = bracket_dimensions(len(seeded))
    padded = pad_with_byes(seeded, bracket_size)
    now = datetime.utcnow()

    slots: Dict[Tuple[int, int], Match] = {}
    for round_number in range(1, total_rounds + 1):
        for match_number in range(1, bracket_size // 2**round_number + 1):
            slots[(round_number, match_number)] = Match(
                tournament_id=tournament_id,
                round=round_number,
                match_number=match_number,
                status=MatchStatus.SCHEDULED,
            )

    for index in range(0, bracket_size, 2):
        match_number = index // 2 + 1
        match = slots[(1, match_number)]
        first, second = padded[index], padded[index + 1]
        write_slot(match, Side.A, first)
        write_slot(match, Side.B, second)

        if first is not None and second is not None:
            continue

        # Bye: the present participant advances without a submitted result
        bye_winner = first if first is not None else second
        write_winner(match, bye_winner)
        match.status = MatchStatus.COMPLETED
        match.is_bye = True
        match.completed_at = now

        parent = slots.get((2, parent_match_number(match_number)))
        if parent is not None:
            write_slot(parent, slot_side(match_number), bye_winner)

    return list(slots.values())


def get_confirmed_participants(session: Session, tournament_id: int, tournament_type: str) -> List[Competitor]:
    """Confirmed registrations as competitors, in registration order."""
    registrations = session.exec(
        select(Registration)
        .where(
            Registration.tournament_id == tournament_id,
            Registration.status == RegistrationStatus.CONFIRMED,
        )
        .order_by(Registration.id)
    ).all()

    participants = []
    for registration in registrations:
        competitor = competitor_from_registration(tournament_type, registration)
        if competitor is None:
            logger.warning(
                "Skipping registration %d on %s tournament %d: no participant id",
                registration.id,
                tournament_type,
                tournament_id,
            )
            continue
        participants.append(competitor)
    return participants


def generate_bracket(
    session: Session,
    tournament_id: int,
    actor: Actor,
    rng: Optional[SeedingRandom] = None,
) -> List[Match]:
    """
    Generate (or regenerate) the bracket for an ONGOING tournament.

    All checks run before any mutation. The previous bracket is deleted and the
    new one inserted in a single transaction.

    Raises:
        NotFound, Forbidden, InvalidState, InsufficientParticipants
    """
    tournament = get_tournament_or_404(session, tournament_id, for_update=True)
    ensure_can_manage(actor, tournament)
    require_ongoing(tournament, "generate bracket")

    participants = get_confirmed_participants(session, tournament_id, tournament.type)
    if len(participants) < MIN_PARTICIPANTS:
        raise InsufficientParticipants(
            f"Need at least {MIN_PARTICIPANTS} participants (have {len(participants)})"
        )

    seeded = list(participants)
    (rng or _default_rng).shuffle(seeded)
    matches = build_bracket(tournament_id, seeded)

    try:
        session.execute(delete(Match).where(Match.tournament_id == tournament_id))
        session.add_all(matches)
        session.commit()
    except Exception:
        session.rollback()
        raise

    total_rounds, bracket_size = bracket_dimensions(len(seeded))
    logger.info(
        "Generated bracket for tournament %d: %d participants, %d rounds, bracket size %d, %d byes",
        tournament_id,
        len(seeded),
        total_rounds,
        bracket_size,
        bracket_size - len(seeded),
    )

    return list_tournament_matches(session, tournament_id)


def list_tournament_matches(session: Session, tournament_id: int) -> List[Match]:
    return list(
        session.exec(
            select(Match)
            .where(Match.tournament_id == tournament_id)
            .order_by(Match.round, Match.match_number)
        ).all()
    )

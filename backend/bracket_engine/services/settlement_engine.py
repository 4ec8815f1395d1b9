"""
Tournament settlement: placements, prize split, host profit, closure.

Settlement runs once per tournament after its final is completed:

1. 1st place is the final's winner, 2nd place the other finalist.
2. Each payout tier with a ranked finisher becomes PRIZE credits. A solo winner
   gets the whole amount. A team prize is split evenly across the roster after
   the captain bonus is taken off the top; the captain receives their even
   share plus the bonus. Floor division can leave a remainder, which is
   withheld (not credited to anyone).
3. collected - prize_pool, when positive, is credited to the host as
   HOST_PROFIT and stored on the tournament.
4. The tournament moves ONGOING -> COMPLETED.

Steps 2-4 are one transaction. The status change is a conditional update
(only from ONGOING), so two concurrent settlements cannot both succeed, and a
failed ledger credit rolls back every credit along with the status change.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlmodel import Session, select

from bracket_engine.auth import Actor, ensure_can_manage
from bracket_engine.competitors import Competitor, UserCompetitor, other_competitor, read_winner
from bracket_engine.config import get_captain_bonus_percent, validate_captain_bonus_percent
from bracket_engine.errors import FinalNotComplete, InvalidState, LedgerFailure
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.payout import Payout
from bracket_engine.models.team import TeamMember, TeamRole
from bracket_engine.models.tournament import Tournament, TournamentStatus
from bracket_engine.services.ledger_service import CATEGORY_HOST_PROFIT, CATEGORY_PRIZE, LedgerService
from bracket_engine.utils.tournament_guards import get_tournament_or_404, require_ongoing

logger = logging.getLogger(__name__)


@dataclass
class Placement:
    position: int
    competitor: Competitor


@dataclass
class CreditLine:
    recipient_id: int
    amount: int
    category: str
    memo: str
    metadata: Dict[str, Any]
    idempotency_key: str


@dataclass
class SettlementPlan:
    tournament_id: int
    placements: List[Placement] = field(default_factory=list)
    credits: List[CreditLine] = field(default_factory=list)
    host_profit: int = 0
    withheld: int = 0  # Prize money left undistributed by floor division

    @property
    def prize_total(self) -> int:
        return sum(c.amount for c in self.credits if c.category == CATEGORY_PRIZE)


@dataclass
class SettlementResult:
    tournament: Tournament
    plan: SettlementPlan


def ordinal(n: int) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'"""
    if 11 <= n % 100 <= 13:
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def split_team_prize(
    amount: int, members: Sequence[TeamMember], captain_bonus_percent: int
) -> Tuple[List[Tuple[int, int]], int]:
    """
    Split a team prize between members.

    captain_bonus = floor(amount * p / 100)
    per_member    = floor((amount - captain_bonus) / team_size)

    Every member gets per_member; the first CAPTAIN also gets captain_bonus.
    With no captain on the roster the bonus is withheld.

    Raises:
        ValueError: empty roster, or captain_bonus_percent outside 0..100

    Returns:
        ([(user_id, share), ...] in roster order, withheld remainder)
    """
    if not members:
        raise ValueError("Cannot split a prize across an empty roster")
    validate_captain_bonus_percent(captain_bonus_percent)

    captain_bonus = amount * captain_bonus_percent // 100
    per_member = (amount - captain_bonus) // len(members)

    shares = []
    bonus_paid = False
    for member in members:
        share = per_member
        if member.role == TeamRole.CAPTAIN and not bonus_paid:
            share += captain_bonus
            bonus_paid = True
        shares.append((member.user_id, share))

    return shares, amount - sum(share for _, share in shares)


def find_final_match(session: Session, tournament_id: int) -> Optional[Match]:
    """The single match in the highest round of the bracket."""
    return session.exec(
        select(Match)
        .where(Match.tournament_id == tournament_id)
        .order_by(Match.round.desc(), Match.match_number)
    ).first()


def rank_finalists(final: Match, tournament_type: str) -> List[Placement]:
    winner = read_winner(final, tournament_type)
    if winner is None:
        return []

    placements = [Placement(position=1, competitor=winner)]
    runner_up = other_competitor(final, tournament_type, winner)
    if runner_up is not None:
        placements.append(Placement(position=2, competitor=runner_up))
    return placements


def _credit_key(tournament_id: int, category: str, position: Any, recipient_id: int) -> str:
    return f"settlement:{tournament_id}:{category}:{position}:{recipient_id}"


def build_settlement_plan(
    session: Session,
    tournament: Tournament,
    final: Match,
    captain_bonus_percent: int,
) -> SettlementPlan:
    """
    Compute every credit settlement will issue, without touching the ledger.

    Raises:
        InvalidState: a winning team has no members
    """
    plan = SettlementPlan(tournament_id=tournament.id)
    plan.placements = rank_finalists(final, tournament.type)
    by_position = {p.position: p for p in plan.placements}

    payouts = session.exec(
        select(Payout).where(Payout.tournament_id == tournament.id).order_by(Payout.position)
    ).all()

    for payout in payouts:
        placement = by_position.get(payout.position)
        if placement is None or payout.amount <= 0:
            continue

        memo = f"{ordinal(payout.position)} place prize for {tournament.name}"
        metadata = {"tournament_id": tournament.id, "position": payout.position}

        if isinstance(placement.competitor, UserCompetitor):
            user_id = placement.competitor.user_id
            plan.credits.append(
                CreditLine(
                    recipient_id=user_id,
                    amount=payout.amount,
                    category=CATEGORY_PRIZE,
                    memo=memo,
                    metadata=metadata,
                    idempotency_key=_credit_key(tournament.id, CATEGORY_PRIZE, payout.position, user_id),
                )
            )
            continue

        team_id = placement.competitor.team_id
        members = session.exec(
            select(TeamMember).where(TeamMember.team_id == team_id).order_by(TeamMember.id)
        ).all()
        if not members:
            raise InvalidState(f"Team {team_id} has no members to receive the {ordinal(payout.position)} place prize")
        if not any(m.role == TeamRole.CAPTAIN for m in members):
            logger.warning("Team %d has no captain; captain bonus withheld (tournament %d)", team_id, tournament.id)

        shares, withheld = split_team_prize(payout.amount, members, captain_bonus_percent)
        plan.withheld += withheld
        for user_id, share in shares:
            if share <= 0:
                continue
            plan.credits.append(
                CreditLine(
                    recipient_id=user_id,
                    amount=share,
                    category=CATEGORY_PRIZE,
                    memo=memo,
                    metadata={**metadata, "team_id": team_id},
                    idempotency_key=_credit_key(tournament.id, CATEGORY_PRIZE, payout.position, user_id),
                )
            )

    host_profit = tournament.collected - tournament.prize_pool
    if host_profit > 0:
        plan.host_profit = host_profit
        plan.credits.append(
            CreditLine(
                recipient_id=tournament.host_id,
                amount=host_profit,
                category=CATEGORY_HOST_PROFIT,
                memo=f"Profit from {tournament.name}",
                metadata={"tournament_id": tournament.id},
                idempotency_key=_credit_key(tournament.id, CATEGORY_HOST_PROFIT, "host", tournament.host_id),
            )
        )

    if plan.withheld:
        logger.warning(
            "Tournament %d: %d of the team prize money is not distributed (floor division remainder)",
            tournament.id,
            plan.withheld,
        )
    return plan


def complete_tournament(
    session: Session,
    tournament_id: int,
    actor: Actor,
    ledger: Optional[LedgerService] = None,
    captain_bonus_percent: Optional[int] = None,
) -> SettlementResult:
    """
    Settle a tournament: pay prizes and host profit, mark it COMPLETED.

    Prizes are paid if and only if the tournament ends up COMPLETED; on any
    failure the tournament stays ONGOING and the call can be retried.

    Raises:
        NotFound, Forbidden
        InvalidState: not ONGOING (includes already settled), or lost a
            concurrent settlement race
        FinalNotComplete: the final match is missing or has no result
        ValueError: captain_bonus_percent outside 0..100
        LedgerFailure: a credit failed; nothing was paid
    """
    tournament = get_tournament_or_404(session, tournament_id)
    ensure_can_manage(actor, tournament)
    require_ongoing(tournament, "complete tournament")

    final = find_final_match(session, tournament_id)
    if final is None or final.status != MatchStatus.COMPLETED:
        raise FinalNotComplete("Final match not completed yet")

    if captain_bonus_percent is None:
        captain_bonus_percent = get_captain_bonus_percent()
    else:
        validate_captain_bonus_percent(captain_bonus_percent)
    plan = build_settlement_plan(session, tournament, final, captain_bonus_percent)
    ledger = ledger or LedgerService()

    try:
        now = datetime.utcnow()
        transition = session.execute(
            update(Tournament)
            .where(Tournament.id == tournament_id, Tournament.status == TournamentStatus.ONGOING)
            .values(
                status=TournamentStatus.COMPLETED,
                host_profit=plan.host_profit,
                completed_at=now,
                updated_at=now,
            )
        )
        if transition.rowcount != 1:
            raise InvalidState("Tournament is already completed")

        for line in plan.credits:
            ledger.credit(
                line.recipient_id,
                line.amount,
                line.category,
                line.memo,
                line.metadata,
                session,
                idempotency_key=line.idempotency_key,
            )
        session.commit()
    except LedgerFailure as e:
        session.rollback()
        logger.error("Settlement of tournament %d rolled back: %s", tournament_id, e)
        raise
    except Exception:
        session.rollback()
        raise

    session.refresh(tournament)
    logger.info(
        "Tournament %d settled: %d credits, %d in prizes, host profit %d",
        tournament_id,
        len(plan.credits),
        plan.prize_total,
        plan.host_profit,
    )
    return SettlementResult(tournament=tournament, plan=plan)

"""
Wallet ledger.

Every balance change goes through LedgerService. A credit updates the wallet
balance and records a WalletTransaction in the caller's session; it flushes
but never commits, so several credits can share one unit of work and roll back
together.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from bracket_engine.errors import LedgerFailure
from bracket_engine.models.wallet import Wallet, WalletTransaction

logger = logging.getLogger(__name__)

CATEGORY_PRIZE = "PRIZE"
CATEGORY_HOST_PROFIT = "HOST_PROFIT"


class LedgerService:
    def credit(
        self,
        recipient_id: int,
        amount: int,
        category: str,
        memo: Optional[str],
        metadata: Optional[Dict[str, Any]],
        session: Session,
        idempotency_key: Optional[str] = None,
    ) -> WalletTransaction:
        """
        Credit `amount` to the recipient's wallet inside `session`.

        A credit whose idempotency key is already recorded returns the existing
        transaction and leaves the balance untouched.

        Raises:
            LedgerFailure: non-positive amount, missing wallet, or a database error
        """
        if amount <= 0:
            raise LedgerFailure(f"Credit amount must be positive (got {amount})")

        if idempotency_key is not None:
            existing = session.exec(
                select(WalletTransaction).where(WalletTransaction.idempotency_key == idempotency_key)
            ).first()
            if existing:
                logger.info("Skipping duplicate credit %s", idempotency_key)
                return existing

        wallet = self.get_wallet(session, recipient_id)
        if not wallet:
            raise LedgerFailure(f"Wallet not found for user {recipient_id}")

        try:
            # Increment in SQL, not read-modify-write
            wallet.balance = Wallet.balance + amount
            transaction = WalletTransaction(
                user_id=recipient_id,
                wallet_id=wallet.id,
                type=category,
                amount=amount,
                message=memo,
                meta=metadata,
                status="COMPLETED",
                idempotency_key=idempotency_key,
            )
            session.add(wallet)
            session.add(transaction)
            session.flush()
        except SQLAlchemyError as e:
            raise LedgerFailure(f"Failed to credit user {recipient_id}: {e}") from e

        return transaction

    def get_wallet(self, session: Session, user_id: int) -> Optional[Wallet]:
        return session.exec(select(Wallet).where(Wallet.user_id == user_id)).first()


def get_ledger() -> LedgerService:
    """FastAPI dependency; overridden in tests."""
    return LedgerService()

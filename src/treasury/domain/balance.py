"""Balance recalculation by full replay of an account's movements."""

from decimal import Decimal
from typing import Iterable

import structlog

from treasury.database.base import LedgerStore
from treasury.domain import errors
from treasury.domain.entities import Movement

logger = structlog.get_logger(__name__)


def replay_balance(opening_balance: Decimal, movements: Iterable[Movement]) -> Decimal:
    """Fold movement amounts onto the opening balance in booking-date order."""
    balance = opening_balance
    for movement in sorted(movements, key=lambda m: (m.booking_date, m.id)):
        balance += movement.amount
    return balance


class BalanceRecalculator:
    """Derives ``Account.balance`` from the movement log."""

    def __init__(self, db: LedgerStore):
        """Initialize balance recalculator.

        Args:
            db: Ledger store instance
        """
        self.db = db

    def recalculate(self, account_id: int) -> Decimal:
        """Replay every movement of an account and persist the result.

        Args:
            account_id: Account ID

        Returns:
            The new balance

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise errors.NotFoundError(errors.account_not_found(account_id))

        movements = self.db.list_movements(account_id=account_id)
        balance = replay_balance(account.opening_balance, movements)
        self.db.set_account_balance(account_id, balance)

        logger.debug(
            "balance_recalculated",
            account_id=account_id,
            movements=len(movements),
            previous=str(account.balance),
            balance=str(balance),
        )
        return balance

    def recalculate_all(self) -> dict[int, Decimal]:
        """Recalculate every account. Returns new balances by account ID."""
        return {account.id: self.recalculate(account.id) for account in self.db.list_accounts()}

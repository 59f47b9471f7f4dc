"""Account domain service."""

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog

from treasury.database.base import LedgerStore
from treasury.domain import errors
from treasury.domain.entities import Account as AccountEntity, DEFAULT_CURRENCY
from treasury.domain.events import DomainEvent, DomainEventBus, EventKind
from treasury.utils.iban import normalize_iban, validate_iban

logger = structlog.get_logger(__name__)


class AccountService:
    """Service for managing bank accounts."""

    def __init__(self, db: LedgerStore, bus: Optional[DomainEventBus] = None):
        """Initialize account service.

        Args:
            db: Ledger store instance
            bus: Event bus notified of account changes (optional)
        """
        self.db = db
        self.bus = bus

    def _publish(self, kind: EventKind, entity: AccountEntity, previous: Optional[AccountEntity] = None) -> None:
        if self.bus is not None:
            self.bus.publish(DomainEvent(kind=kind, entity=entity, previous=previous))

    def _get_or_raise(self, account_id: int) -> AccountEntity:
        account = self.db.get_account(account_id)
        if account is None:
            raise errors.NotFoundError(errors.account_not_found(account_id))
        return account

    def create_account(
        self,
        name: str,
        bank_name: str,
        iban: str,
        opening_balance: Decimal = Decimal("0"),
        opening_balance_date: Optional[date] = None,
        minimum_balance: Optional[Decimal] = None,
        currency: str = DEFAULT_CURRENCY,
    ) -> int:
        """Create a new account.

        Args:
            name: Display name
            bank_name: Bank name
            iban: IBAN, spaces allowed
            opening_balance: Balance at the opening date
            opening_balance_date: Opening date (defaults to today)
            minimum_balance: Threshold used for liquidity recommendations
            currency: ISO currency code

        Returns:
            Account ID

        Raises:
            ValidationError: If a required field is missing or the IBAN is invalid
            ConflictError: If another account already uses the IBAN
        """
        name = (name or "").strip()
        bank_name = (bank_name or "").strip()
        if not name:
            raise errors.ValidationError("Account name is required")
        if not bank_name:
            raise errors.ValidationError("Bank name is required")

        normalized = validate_iban(iban)
        if self.db.get_account_by_iban(normalized) is not None:
            raise errors.ConflictError(errors.duplicate_iban(normalized))

        currency = (currency or DEFAULT_CURRENCY).strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise errors.ValidationError(f"Invalid currency code '{currency}'")

        account_id = self.db.create_account(
            name=name,
            bank_name=bank_name,
            iban=normalized,
            opening_balance=Decimal(opening_balance),
            opening_balance_date=opening_balance_date or date.today(),
            minimum_balance=minimum_balance,
            currency=currency,
        )
        logger.info("account_created", account_id=account_id, iban=normalized)
        self._publish(EventKind.ACCOUNT_CHANGED, self._get_or_raise(account_id))
        return account_id

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def get_account_by_iban(self, iban: str) -> Optional[AccountEntity]:
        """Get account by IBAN, ignoring spacing and case."""
        return self.db.get_account_by_iban(normalize_iban(iban))

    def list_accounts(self, include_inactive: bool = True) -> list[AccountEntity]:
        """List accounts.

        Args:
            include_inactive: Include deactivated accounts

        Returns:
            List of account entities
        """
        return self.db.list_accounts(include_inactive=include_inactive)

    def require_active_account(self, account_id: int) -> AccountEntity:
        """Return the account if it exists and is active.

        Raises:
            InvalidAccountError: If the account is missing or inactive
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise errors.InvalidAccountError(errors.account_not_found(account_id))
        if not account.is_active:
            raise errors.InvalidAccountError(errors.account_inactive(account_id))
        return account

    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        bank_name: Optional[str] = None,
        iban: Optional[str] = None,
        opening_balance: Optional[Decimal] = None,
        opening_balance_date: Optional[date] = None,
        minimum_balance: Optional[Decimal] = None,
    ) -> AccountEntity:
        """Update account fields. Fields left as None are not changed.

        Returns:
            The updated account

        Raises:
            NotFoundError: If account not found
            ValidationError: If a name is blank or the IBAN is invalid
            ConflictError: If another account already uses the IBAN
        """
        previous = self._get_or_raise(account_id)

        if name is not None:
            name = name.strip()
            if not name:
                raise errors.ValidationError("Account name is required")
        if bank_name is not None:
            bank_name = bank_name.strip()
            if not bank_name:
                raise errors.ValidationError("Bank name is required")
        if iban is not None:
            iban = validate_iban(iban)

        self.db.update_account(
            account_id,
            name=name,
            bank_name=bank_name,
            iban=iban,
            opening_balance=opening_balance,
            opening_balance_date=opening_balance_date,
            minimum_balance=minimum_balance,
        )
        account = self._get_or_raise(account_id)
        logger.info("account_updated", account_id=account_id)
        self._publish(EventKind.ACCOUNT_CHANGED, account, previous)
        return account

    def deactivate_account(self, account_id: int) -> None:
        """Deactivate an account, keeping its history.

        Raises:
            NotFoundError: If account not found
            ValidationError: If the account is already inactive
        """
        previous = self._get_or_raise(account_id)
        if not previous.is_active:
            raise errors.ValidationError(f"Account {account_id} is already inactive")

        self.db.set_account_active(account_id, False)
        logger.info("account_deactivated", account_id=account_id)
        self._publish(EventKind.ACCOUNT_CHANGED, self._get_or_raise(account_id), previous)

    def activate_account(self, account_id: int) -> None:
        """Reactivate a deactivated account.

        Raises:
            NotFoundError: If account not found
            ValidationError: If the account is already active
        """
        previous = self._get_or_raise(account_id)
        if previous.is_active:
            raise errors.ValidationError(f"Account {account_id} is already active")

        self.db.set_account_active(account_id, True)
        logger.info("account_activated", account_id=account_id)
        self._publish(EventKind.ACCOUNT_CHANGED, self._get_or_raise(account_id), previous)

    def delete_account(self, account_id: int) -> None:
        """Delete an account that has no movements.

        Args:
            account_id: Account ID to delete

        Raises:
            NotFoundError: If account not found
            DependencyError: If the account has movements
        """
        account = self._get_or_raise(account_id)

        movement_count = self.db.get_account_movement_count(account_id)
        if movement_count > 0:
            raise errors.DependencyError(errors.account_delete_blocked(account_id, movement_count))

        self.db.delete_account(account_id)
        logger.info("account_deleted", account_id=account_id)
        self._publish(EventKind.ACCOUNT_DELETED, account)

    def delete_account_cascade(self, account_id: int) -> dict[str, int]:
        """Delete an account together with its movements, rules and recommendations.

        Forecast events that referenced the account are kept and unlinked.

        Returns:
            Number of removed or unlinked rows per collection

        Raises:
            NotFoundError: If account not found
        """
        account = self._get_or_raise(account_id)
        summary = self.db.delete_account_cascade(account_id)
        logger.warning("account_deleted_cascade", account_id=account_id, **summary)
        self._publish(EventKind.ACCOUNT_DELETED, account)
        return summary

"""Movement domain service for manual ledger entries."""

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog

from treasury.database.base import LedgerStore
from treasury.domain import errors
from treasury.domain.account import AccountService
from treasury.domain.entities import (
    Movement as MovementEntity,
    MovementStatus,
    NewMovement,
    ReconciliationState,
)
from treasury.domain.events import DomainEvent, DomainEventBus, EventKind

logger = structlog.get_logger(__name__)


class MovementService:
    """Service for creating, correcting and removing movements by hand."""

    def __init__(self, db: LedgerStore, bus: Optional[DomainEventBus] = None):
        """Initialize movement service.

        Args:
            db: Ledger store instance
            bus: Event bus notified of movement changes (optional)
        """
        self.db = db
        self.bus = bus
        self.account_service = AccountService(db, bus)

    def _publish(self, kind: EventKind, entity: MovementEntity, previous: Optional[MovementEntity] = None) -> None:
        if self.bus is not None:
            self.bus.publish(DomainEvent(kind=kind, entity=entity, previous=previous))

    def _get_or_raise(self, movement_id: int) -> MovementEntity:
        movement = self.db.get_movement(movement_id)
        if movement is None:
            raise errors.NotFoundError(errors.movement_not_found(movement_id))
        return movement

    def create_movement(
        self,
        account_id: int,
        date: date,
        amount: Decimal,
        description: str,
        value_date: Optional[date] = None,
        counterparty: Optional[str] = None,
        reference: Optional[str] = None,
        category: Optional[str] = None,
    ) -> int:
        """Record a manual movement.

        Args:
            account_id: Account ID
            date: Operation date
            amount: Signed amount (negative for debits)
            description: Free-text description
            value_date: Value date (optional)
            counterparty: Counterparty name (optional)
            reference: Bank reference (optional)
            category: Category label (optional)

        Returns:
            Movement ID

        Raises:
            InvalidAccountError: If the account is missing or inactive
            ValidationError: If the amount is zero
        """
        account = self.account_service.require_active_account(account_id)
        amount = Decimal(amount)
        if amount == 0:
            raise errors.ValidationError("Movement amount must not be zero")

        movement_id = self.db.create_movement(
            NewMovement(
                account_id=account_id,
                date=date,
                amount=amount,
                description=description or "",
                value_date=value_date,
                counterparty=counterparty,
                reference=reference,
                currency=account.currency,
                status=MovementStatus.CONFIRMED,
                category=category,
            )
        )
        logger.info("movement_created", movement_id=movement_id, account_id=account_id, amount=str(amount))
        self._publish(EventKind.MOVEMENT_CREATED, self._get_or_raise(movement_id))
        return movement_id

    def get_movement(self, movement_id: int) -> Optional[MovementEntity]:
        """Get movement by ID."""
        return self.db.get_movement(movement_id)

    def list_movements(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        unreconciled_only: bool = False,
    ) -> list[MovementEntity]:
        """List movements with optional filters.

        Args:
            account_id: Filter by account ID
            start_date: Filter by start date (inclusive)
            end_date: Filter by end date (inclusive)
            unreconciled_only: Only movements not linked to a forecast event

        Returns:
            List of movement entities
        """
        state = ReconciliationState.UNRECONCILED.value if unreconciled_only else None
        return self.db.list_movements(
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
            reconciliation_state=state,
        )

    def update_movement(
        self,
        movement_id: int,
        date: Optional[date] = None,
        value_date: Optional[date] = None,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        counterparty: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> MovementEntity:
        """Correct a manual movement that is not reconciled yet.

        Raises:
            NotFoundError: If movement not found
            AlreadyReconciledError: If the movement is reconciled
            ValidationError: If the movement came from a statement import
        """
        previous = self._get_or_raise(movement_id)
        if previous.reconciliation_state == ReconciliationState.RECONCILED:
            raise errors.AlreadyReconciledError(errors.movement_already_reconciled(movement_id))
        if previous.import_batch_id is not None:
            raise errors.ValidationError(f"Movement {movement_id} was imported from a statement and cannot be edited")
        if amount is not None and Decimal(amount) == 0:
            raise errors.ValidationError("Movement amount must not be zero")

        self.db.update_movement(
            movement_id,
            date=date,
            value_date=value_date,
            amount=amount,
            description=description,
            counterparty=counterparty,
            reference=reference,
        )
        movement = self._get_or_raise(movement_id)
        logger.info("movement_updated", movement_id=movement_id)
        self._publish(EventKind.MOVEMENT_UPDATED, movement, previous)
        return movement

    def delete_movement(self, movement_id: int) -> None:
        """Delete an unreconciled movement.

        Raises:
            NotFoundError: If movement not found
            AlreadyReconciledError: If the movement is linked to a forecast event
        """
        movement = self._get_or_raise(movement_id)
        if movement.reconciliation_state == ReconciliationState.RECONCILED:
            raise errors.AlreadyReconciledError(errors.movement_already_reconciled(movement_id))

        self.db.delete_movement(movement_id)
        logger.info("movement_deleted", movement_id=movement_id, account_id=movement.account_id)
        self._publish(EventKind.MOVEMENT_DELETED, movement)

    def attach_document(self, movement_id: int, document_id: str) -> MovementEntity:
        """Attach a source document reference to a movement."""
        previous = self._get_or_raise(movement_id)
        self.db.attach_document(movement_id, document_id)
        movement = self._get_or_raise(movement_id)
        self._publish(EventKind.MOVEMENT_UPDATED, movement, previous)
        return movement

    def set_category(self, movement_id: int, category: Optional[str]) -> None:
        """Set or clear the category of a movement."""
        self._get_or_raise(movement_id)
        self.db.set_movement_category(movement_id, category)

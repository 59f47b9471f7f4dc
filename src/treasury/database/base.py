"""Abstract ledger store interface."""

from abc import ABC, abstractmethod
from typing import Optional
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from treasury.domain.entities import (
    Account,
    AutomationRule,
    ForecastEvent,
    ImportBatch,
    Movement,
    NewMovement,
    Recommendation,
)


class LedgerStore(ABC):
    """Persistent collections shared by every treasury component.

    No component keeps balances or entities cached outside the store; callers
    re-read after each mutation.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the store."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the store."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize store schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        name: str,
        bank_name: str,
        iban: str,
        opening_balance: Decimal,
        opening_balance_date: date,
        minimum_balance: Optional[Decimal] = None,
        currency: str = "EUR",
    ) -> int:
        """Create a new account with balance equal to its opening balance. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_iban(self, iban: str) -> Optional[Account]:
        """Get account by normalized IBAN."""
        pass

    @abstractmethod
    def list_accounts(self, include_inactive: bool = True) -> list[Account]:
        """List accounts ordered by ID."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        bank_name: Optional[str] = None,
        iban: Optional[str] = None,
        opening_balance: Optional[Decimal] = None,
        opening_balance_date: Optional[date] = None,
        minimum_balance: Optional[Decimal] = None,
    ) -> None:
        """Update account fields that are not None."""
        pass

    @abstractmethod
    def set_account_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate an account."""
        pass

    @abstractmethod
    def set_account_balance(self, account_id: int, balance: Decimal) -> None:
        """Persist a recalculated balance."""
        pass

    @abstractmethod
    def set_account_risk_flag(self, account_id: int, is_at_risk: bool) -> None:
        """Persist the projected-risk flag."""
        pass

    @abstractmethod
    def get_account_movement_count(self, account_id: int) -> int:
        """Count movements of an account."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account that has no movements."""
        pass

    @abstractmethod
    def delete_account_cascade(self, account_id: int) -> dict[str, int]:
        """Delete an account with its movements, rules and recommendations.

        Forecast events are kept and unlinked from the account. Returns counts
        of removed or unlinked rows per collection.
        """
        pass

    # Movement operations
    @abstractmethod
    def create_movement(self, movement: NewMovement) -> int:
        """Create a movement. Returns movement ID."""
        pass

    @abstractmethod
    def get_movement(self, movement_id: int) -> Optional[Movement]:
        """Get movement by ID."""
        pass

    @abstractmethod
    def list_movements(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        reconciliation_state: Optional[str] = None,
        import_batch_id: Optional[str] = None,
    ) -> list[Movement]:
        """List movements with optional filters, ordered by ID."""
        pass

    @abstractmethod
    def update_movement(
        self,
        movement_id: int,
        date: Optional[date] = None,
        value_date: Optional[date] = None,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        counterparty: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> None:
        """Update movement fields that are not None."""
        pass

    @abstractmethod
    def set_movement_category(self, movement_id: int, category: Optional[str]) -> None:
        """Set or clear the category of a movement."""
        pass

    @abstractmethod
    def attach_document(self, movement_id: int, document_id: str) -> None:
        """Append a document reference to a movement."""
        pass

    @abstractmethod
    def delete_movement(self, movement_id: int) -> None:
        """Delete a movement."""
        pass

    # Import batch operations
    @abstractmethod
    def create_import_batch(self, batch: ImportBatch) -> None:
        """Persist an import batch audit record."""
        pass

    @abstractmethod
    def get_import_batch_by_hash(self, content_hash: str) -> Optional[ImportBatch]:
        """Get the batch that imported a file with the given content hash."""
        pass

    @abstractmethod
    def list_import_batches(self, account_id: Optional[int] = None) -> list[ImportBatch]:
        """List import batches, newest first."""
        pass

    # Forecast event operations
    @abstractmethod
    def create_forecast_event(
        self,
        event_type: str,
        amount: Decimal,
        predicted_date: date,
        description: str,
        source_type: str,
        source_id: str,
        payment_method: str,
        account_id: Optional[int] = None,
        iban: Optional[str] = None,
    ) -> int:
        """Create a predicted forecast event. Returns event ID."""
        pass

    @abstractmethod
    def get_forecast_event(self, event_id: int) -> Optional[ForecastEvent]:
        """Get forecast event by ID."""
        pass

    @abstractmethod
    def list_forecast_events(
        self,
        status: Optional[str] = None,
        account_id: Optional[int] = None,
        source_id: Optional[str] = None,
    ) -> list[ForecastEvent]:
        """List forecast events with optional filters, ordered by ID."""
        pass

    @abstractmethod
    def update_forecast_event(
        self,
        event_id: int,
        amount: Decimal,
        predicted_date: date,
        description: str,
        payment_method: str,
        iban: Optional[str],
        account_id: Optional[int],
    ) -> None:
        """Replace the document-derived fields of a forecast event."""
        pass

    @abstractmethod
    def reconcile(
        self,
        event_id: int,
        movement_id: int,
        actual_date: date,
        actual_amount: Decimal,
        document_id: Optional[str] = None,
    ) -> None:
        """Link an event to a movement in a single commit.

        Marks the event executed with its actual date, amount and movement,
        and the movement reconciled and confirmed with the document attached.
        """
        pass

    # Recommendation operations
    @abstractmethod
    def replace_active_recommendations(self, recommendations: list[Recommendation]) -> None:
        """Drop every active recommendation and store the given set in one commit."""
        pass

    @abstractmethod
    def get_recommendation(self, recommendation_id: str) -> Optional[Recommendation]:
        """Get recommendation by ID."""
        pass

    @abstractmethod
    def list_recommendations(self, status: Optional[str] = None) -> list[Recommendation]:
        """List recommendations, optionally filtered by status."""
        pass

    @abstractmethod
    def set_recommendation_status(self, recommendation_id: str, status: str) -> None:
        """Change a recommendation's status."""
        pass

    # Automation rule operations
    @abstractmethod
    def upsert_rule(
        self,
        account_id: int,
        learn_key: str,
        counterparty_pattern: str,
        description_pattern: str,
        amount_sign: str,
        category: str,
    ) -> int:
        """Create a rule or update the category of the rule with the same key. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[AutomationRule]:
        """Get rule by ID."""
        pass

    @abstractmethod
    def list_rules(self, account_id: Optional[int] = None) -> list[AutomationRule]:
        """List automation rules."""
        pass

    @abstractmethod
    def record_rule_applied(self, rule_id: int, count: int) -> None:
        """Increase the applied count of a rule."""
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete an automation rule."""
        pass

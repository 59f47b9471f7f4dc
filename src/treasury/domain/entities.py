"""Domain model entities for the treasury engine.

These are pure data classes representing business concepts, independent of
database schema. Services receive and return these; the database layer maps
them to and from ORM rows.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


DEFAULT_CURRENCY = "EUR"


class MovementStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class ReconciliationState(str, Enum):
    UNRECONCILED = "unreconciled"
    RECONCILED = "reconciled"


class EventType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class EventStatus(str, Enum):
    PREDICTED = "predicted"
    EXECUTED = "executed"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class RecommendationType(str, Enum):
    TRANSFER = "transfer"
    ALERT = "alert"


class RecommendationStatus(str, Enum):
    ACTIVE = "active"
    DISMISSED = "dismissed"


@dataclass(frozen=True)
class Account:
    """Bank account under management."""

    id: int
    name: str
    bank_name: str
    iban: str
    opening_balance: Decimal
    opening_balance_date: date
    balance: Decimal
    minimum_balance: Optional[Decimal]
    currency: str
    is_active: bool
    is_at_risk: bool
    deactivated_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Movement:
    """One bank ledger line. Negative amounts are debits."""

    id: int
    account_id: int
    date: date
    value_date: Optional[date]
    amount: Decimal
    description: str
    counterparty: Optional[str]
    reference: Optional[str]
    running_balance: Optional[Decimal]
    currency: str
    status: MovementStatus
    reconciliation_state: ReconciliationState
    import_batch_id: Optional[str]
    row_index: Optional[int]
    document_ids: tuple[str, ...]
    category: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def booking_date(self) -> date:
        """Date used for ordering: value date, falling back to operation date."""
        return self.value_date or self.date


@dataclass(frozen=True)
class ImportBatch:
    """Audit record of one statement file import."""

    id: str
    filename: str
    detected_format: str
    detected_bank: Optional[str]
    account_id: int
    account_iban: Optional[str]
    date_from: Optional[date]
    date_to: Optional[date]
    total_rows: int
    imported_rows: int
    duplicate_rows: int
    error_rows: int
    content_hash: str
    actor: str
    imported_at: datetime


@dataclass(frozen=True)
class ForecastEvent:
    """Predicted future cash movement derived from a source document."""

    id: int
    event_type: EventType
    amount: Decimal
    predicted_date: date
    description: str
    source_type: str
    source_id: str
    account_id: Optional[int]
    iban: Optional[str]
    payment_method: str
    status: EventStatus
    movement_id: Optional[int]
    actual_date: Optional[date]
    actual_amount: Optional[Decimal]
    created_at: datetime
    updated_at: datetime

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign it will have on the bank statement."""
        return self.amount if self.event_type == EventType.INCOME else -self.amount


@dataclass(frozen=True)
class Recommendation:
    """Liquidity suggestion produced by one recommendation run."""

    id: str
    rec_type: RecommendationType
    severity: Severity
    source_account_id: Optional[int]
    target_account_id: int
    suggested_amount: Decimal
    suggested_date: date
    title: str
    description: str
    status: RecommendationStatus
    created_at: datetime


@dataclass(frozen=True)
class AutomationRule:
    """Learned categorization rule for movements of one account."""

    id: int
    account_id: int
    learn_key: str
    counterparty_pattern: str
    description_pattern: str
    amount_sign: str
    category: str
    applied_count: int
    created_at: datetime
    last_applied_at: Optional[datetime]


@dataclass(frozen=True)
class NewMovement:
    """Movement values before they are stored."""

    account_id: int
    date: date
    amount: Decimal
    description: str
    value_date: Optional[date] = None
    counterparty: Optional[str] = None
    reference: Optional[str] = None
    running_balance: Optional[Decimal] = None
    currency: str = DEFAULT_CURRENCY
    status: MovementStatus = MovementStatus.CONFIRMED
    import_batch_id: Optional[str] = None
    row_index: Optional[int] = None
    category: Optional[str] = None
    document_ids: tuple[str, ...] = field(default_factory=tuple)

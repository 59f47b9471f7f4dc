"""Forward projection of account balances from forecast events."""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from treasury.database.base import LedgerStore
from treasury.domain import errors
from treasury.domain.entities import Account, EventStatus, EventType, ForecastEvent

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AccountProjection:
    """Current and horizon-adjusted balance of one account."""

    account: Account
    current: Decimal
    inflow: Decimal
    outflow: Decimal
    minimum_balance: Decimal

    @property
    def account_id(self) -> int:
        return self.account.id

    @property
    def projected(self) -> Decimal:
        return self.current + self.inflow - self.outflow

    @property
    def is_below_minimum(self) -> bool:
        return self.projected < self.minimum_balance


@dataclass(frozen=True)
class Projection:
    """Result of ``ProjectionService.get_projections``."""

    days: int
    start_date: date
    end_date: date
    events: list[ForecastEvent]
    account_balances: dict[int, AccountProjection]
    total_inflow: Decimal
    total_outflow: Decimal

    @property
    def net_flow(self) -> Decimal:
        return self.total_inflow - self.total_outflow


class ProjectionService:
    """Computes projected balances over a horizon of days."""

    def __init__(self, db: LedgerStore, default_minimum_balance: Decimal = Decimal("200")):
        """Initialize projection service.

        Args:
            db: Ledger store instance
            default_minimum_balance: Threshold for accounts without their own
        """
        self.db = db
        self.default_minimum_balance = default_minimum_balance

    def minimum_for(self, account: Account) -> Decimal:
        """Minimum balance configured for an account, or the default."""
        if account.minimum_balance is None:
            return self.default_minimum_balance
        return account.minimum_balance

    def get_projections(
        self,
        days: int = 30,
        account_ids: Optional[Iterable[int]] = None,
        today: Optional[date] = None,
    ) -> Projection:
        """Project balances ``days`` ahead.

        Only forecast events that have not executed and fall between today
        and the horizon (both inclusive) count. When ``account_ids`` is given,
        events and balances are limited to those accounts.

        Args:
            days: Horizon in days
            account_ids: Restrict to these accounts (optional)
            today: Reference date (defaults to today)

        Returns:
            Projection with the events considered and per-account balances

        Raises:
            ValidationError: If days is negative
        """
        if days < 0:
            raise errors.ValidationError(f"Projection horizon must not be negative, got {days}")

        start = today or date.today()
        end = start + timedelta(days=days)
        selected = set(account_ids) if account_ids is not None else None

        events = [
            event
            for event in self.db.list_forecast_events()
            if event.status != EventStatus.EXECUTED
            and start <= event.predicted_date <= end
            and (selected is None or event.account_id in selected)
        ]

        total_inflow = sum((e.amount for e in events if e.event_type == EventType.INCOME), Decimal("0"))
        total_outflow = sum((e.amount for e in events if e.event_type == EventType.EXPENSE), Decimal("0"))

        balances = {}
        for account in self.db.list_accounts(include_inactive=False):
            if selected is not None and account.id not in selected:
                continue
            account_events = [e for e in events if e.account_id == account.id]
            balances[account.id] = AccountProjection(
                account=account,
                current=account.balance,
                inflow=sum(
                    (e.amount for e in account_events if e.event_type == EventType.INCOME), Decimal("0")
                ),
                outflow=sum(
                    (e.amount for e in account_events if e.event_type == EventType.EXPENSE), Decimal("0")
                ),
                minimum_balance=self.minimum_for(account),
            )

        return Projection(
            days=days,
            start_date=start,
            end_date=end,
            events=events,
            account_balances=balances,
            total_inflow=total_inflow,
            total_outflow=total_outflow,
        )

    def update_risk_flags(self, days: int = 30, today: Optional[date] = None) -> int:
        """Flag accounts whose projected balance falls below their minimum.

        Inactive accounts are never flagged.

        Returns:
            Number of accounts at risk
        """
        projection = self.get_projections(days=days, today=today)
        at_risk = 0
        for account in self.db.list_accounts():
            entry = projection.account_balances.get(account.id)
            flagged = entry is not None and entry.is_below_minimum
            if flagged != account.is_at_risk:
                self.db.set_account_risk_flag(account.id, flagged)
            at_risk += int(flagged)

        logger.debug("risk_flags_updated", days=days, at_risk=at_risk)
        return at_risk

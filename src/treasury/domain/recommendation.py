"""Liquidity recommendations from projected balances."""

import uuid
from datetime import date, datetime, timedelta, UTC
from decimal import Decimal, ROUND_CEILING
from typing import Optional

import structlog

from treasury.database.base import LedgerStore
from treasury.domain import errors
from treasury.domain.entities import (
    Recommendation,
    RecommendationStatus,
    RecommendationType,
    Severity,
)
from treasury.domain.projection import AccountProjection, ProjectionService

logger = structlog.get_logger(__name__)


def round_up(amount: Decimal, step: Decimal) -> Decimal:
    """Round a positive amount up to the next multiple of step."""
    return (amount / step).to_integral_value(rounding=ROUND_CEILING) * step


class RecommendationGenerator:
    """Proposes sweep transfers for accounts projected below their minimum.

    Every run replaces the whole set of active recommendations. Dismissed
    recommendations are kept as history; a deficit that persists is proposed
    again on the next run.
    """

    def __init__(
        self,
        db: LedgerStore,
        projections: ProjectionService,
        horizon_days: int = 30,
        rounding: Decimal = Decimal("100"),
        lead_days: int = 25,
        emit_liquidity_alerts: bool = True,
    ):
        self.db = db
        self.projections = projections
        self.horizon_days = horizon_days
        self.rounding = rounding
        self.lead_days = lead_days
        self.emit_liquidity_alerts = emit_liquidity_alerts

    def plan(self, today: Optional[date] = None) -> list[Recommendation]:
        """Compute the recommendation set without storing it."""
        today = today or date.today()
        projection = self.projections.get_projections(days=self.horizon_days, today=today)
        accounts = sorted(projection.account_balances.values(), key=lambda p: p.account_id)

        created_at = datetime.now(UTC)
        suggested_date = today + timedelta(days=self.lead_days)
        plan = []
        for target in accounts:
            if not target.is_below_minimum:
                continue

            deficit = target.minimum_balance - target.projected
            amount = round_up(deficit, self.rounding)
            severity = Severity.CRITICAL if target.projected < 0 else Severity.WARNING
            source = self._select_source(target, accounts)

            if source is not None and source.projected > amount:
                rec = self._transfer(target, source, amount, severity, suggested_date, created_at)
            elif self.emit_liquidity_alerts:
                rec = self._alert(target, amount, severity, suggested_date, created_at)
            else:
                continue

            plan.append(rec)

        return plan

    def regenerate(self, today: Optional[date] = None) -> list[Recommendation]:
        """Replace all active recommendations with a freshly computed set."""
        plan = self.plan(today=today)
        self.db.replace_active_recommendations(plan)
        logger.info(
            "recommendations_regenerated",
            transfers=sum(1 for r in plan if r.rec_type == RecommendationType.TRANSFER),
            alerts=sum(1 for r in plan if r.rec_type == RecommendationType.ALERT),
        )
        return plan

    def list_active(self) -> list[Recommendation]:
        """List active recommendations."""
        return self.db.list_recommendations(status=RecommendationStatus.ACTIVE.value)

    def dismiss(self, recommendation_id: str) -> None:
        """Dismiss an active recommendation.

        Raises:
            NotFoundError: If the recommendation does not exist
            ValidationError: If it is already dismissed
        """
        rec = self.db.get_recommendation(recommendation_id)
        if rec is None:
            raise errors.NotFoundError(errors.recommendation_not_found(recommendation_id))
        if rec.status == RecommendationStatus.DISMISSED:
            raise errors.ValidationError(f"Recommendation '{recommendation_id}' is already dismissed")
        self.db.set_recommendation_status(recommendation_id, RecommendationStatus.DISMISSED.value)
        logger.info("recommendation_dismissed", recommendation_id=recommendation_id)

    @staticmethod
    def _select_source(
        target: AccountProjection, accounts: list[AccountProjection]
    ) -> Optional[AccountProjection]:
        # Highest projected balance wins; the lowest ID breaks ties
        others = [p for p in accounts if p.account_id != target.account_id]
        if not others:
            return None
        return max(others, key=lambda p: (p.projected, -p.account_id))

    def _transfer(self, target, source, amount, severity, suggested_date, created_at) -> Recommendation:
        currency = target.account.currency
        return Recommendation(
            id=f"rec_{uuid.uuid4().hex[:12]}",
            rec_type=RecommendationType.TRANSFER,
            severity=severity,
            source_account_id=source.account_id,
            target_account_id=target.account_id,
            suggested_amount=amount,
            suggested_date=suggested_date,
            title=f"Transfer {amount} {currency} from {source.account.name} to {target.account.name}",
            description=(
                f"{target.account.name} is projected at {target.projected} {currency} in "
                f"{self.horizon_days} days, below its minimum of {target.minimum_balance}. "
                f"{source.account.name} is projected at {source.projected} {currency}."
            ),
            status=RecommendationStatus.ACTIVE,
            created_at=created_at,
        )

    def _alert(self, target, amount, severity, suggested_date, created_at) -> Recommendation:
        currency = target.account.currency
        return Recommendation(
            id=f"rec_{uuid.uuid4().hex[:12]}",
            rec_type=RecommendationType.ALERT,
            severity=severity,
            source_account_id=None,
            target_account_id=target.account_id,
            suggested_amount=amount,
            suggested_date=suggested_date,
            title=f"Insufficient liquidity for {target.account.name}",
            description=(
                f"{target.account.name} is projected at {target.projected} {currency} in "
                f"{self.horizon_days} days, below its minimum of {target.minimum_balance}. "
                f"No other account can cover {amount} {currency}."
            ),
            status=RecommendationStatus.ACTIVE,
            created_at=created_at,
        )

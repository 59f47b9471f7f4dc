"""Recalculation cascade run after every movement or account mutation."""

from typing import Iterable

import structlog

from treasury.database.base import LedgerStore
from treasury.domain.balance import BalanceRecalculator
from treasury.domain.projection import ProjectionService
from treasury.domain.recommendation import RecommendationGenerator

logger = structlog.get_logger(__name__)


class TreasuryCascade:
    """Balance recalculation, then risk flags, then recommendations.

    Balance recalculation errors propagate to the caller. Failures in the
    later steps are logged and swallowed.
    """

    def __init__(
        self,
        db: LedgerStore,
        recalculator: BalanceRecalculator,
        projections: ProjectionService,
        recommendations: RecommendationGenerator,
        horizon_days: int = 30,
    ):
        self.db = db
        self.recalculator = recalculator
        self.projections = projections
        self.recommendations = recommendations
        self.horizon_days = horizon_days

    def __call__(self, account_ids: Iterable[int]) -> None:
        """Run the cascade for the given accounts."""
        recalculated = []
        for account_id in sorted(account_ids):
            # Deleted accounts have nothing left to recalculate
            if self.db.get_account(account_id) is None:
                continue
            self.recalculator.recalculate(account_id)
            recalculated.append(account_id)

        logger.debug("cascade_balances_done", accounts=recalculated)
        self.refresh_derived()

    def refresh(self) -> None:
        """Recalculate every account and rebuild derived state."""
        self.recalculator.recalculate_all()
        self.refresh_derived()

    def refresh_derived(self) -> None:
        """Recompute risk flags and recommendations from current balances."""
        try:
            self.projections.update_risk_flags(days=self.horizon_days)
        except Exception:
            logger.exception("cascade_step_failed", step="risk_flags")

        try:
            self.recommendations.regenerate()
        except Exception:
            logger.exception("cascade_step_failed", step="recommendations")

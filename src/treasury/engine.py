"""Engine facade wiring the ledger store, event bus and services together."""

from datetime import date
from typing import Iterable, Optional

from treasury.config import TreasurySettings, get_settings
from treasury.database.base import LedgerStore
from treasury.database.factories import create_sqlite_store
from treasury.domain.account import AccountService
from treasury.domain.balance import BalanceRecalculator
from treasury.domain.cascade import TreasuryCascade
from treasury.domain.entities import ForecastEvent, Recommendation
from treasury.domain.events import DomainEventBus
from treasury.domain.forecast import ForecastEventFactory, SourceDocument
from treasury.domain.matching import MatchCandidate, MatchingEngine
from treasury.domain.movement import MovementService
from treasury.domain.projection import Projection, ProjectionService
from treasury.domain.recommendation import RecommendationGenerator
from treasury.domain.rules import RuleService
from treasury.domain.statement_import import ImportService
from treasury.domain.statement_parser import StatementParser


class TreasuryEngine:
    """Entry point for every treasury operation and query.

    All services share one ledger store and one event bus whose cascade
    recalculates balances, risk flags and recommendations after each change.
    """

    def __init__(
        self,
        db: LedgerStore,
        settings: Optional[TreasurySettings] = None,
        parser: Optional[StatementParser] = None,
    ):
        """Initialize the engine.

        Args:
            db: Connected ledger store
            settings: Engine settings (defaults to get_settings())
            parser: Statement parser used by imports (optional)
        """
        self.db = db
        self.settings = settings or get_settings()
        s = self.settings

        self.recalculator = BalanceRecalculator(db)
        self.projections = ProjectionService(db, default_minimum_balance=s.default_minimum_balance)
        self.recommendations = RecommendationGenerator(
            db,
            self.projections,
            horizon_days=s.projection_horizon_days,
            rounding=s.transfer_rounding,
            lead_days=s.transfer_lead_days,
            emit_liquidity_alerts=s.emit_liquidity_alerts,
        )
        self.cascade = TreasuryCascade(
            db,
            self.recalculator,
            self.projections,
            self.recommendations,
            horizon_days=s.projection_horizon_days,
        )
        self.bus = DomainEventBus(self.cascade)

        self.accounts = AccountService(db, self.bus)
        self.movements = MovementService(db, self.bus)
        self.matching = MatchingEngine(
            db,
            self.bus,
            review_threshold=s.review_threshold,
            auto_accept_threshold=s.auto_accept_threshold,
            amount_tolerance=s.amount_tolerance,
            date_window_days=s.date_window_days,
        )
        self.rules = RuleService(db)
        self.forecasts = ForecastEventFactory(db)
        self.imports = ImportService(
            db,
            self.bus,
            parser=parser,
            matching_engine=self.matching,
            rule_service=self.rules,
        )

    @classmethod
    def from_settings(
        cls, settings: Optional[TreasurySettings] = None, db_path: Optional[str] = None
    ) -> "TreasuryEngine":
        """Open the SQLite ledger named by db_path or the settings and build an engine."""
        settings = settings or get_settings()
        db = create_sqlite_store(database_path=db_path or settings.db_path)
        db.connect()
        db.initialize_schema()
        return cls(db, settings=settings)

    def close(self) -> None:
        """Release the store connection."""
        self.db.disconnect()

    # Query surface
    def get_projections(
        self,
        days: Optional[int] = None,
        account_ids: Optional[Iterable[int]] = None,
        today: Optional[date] = None,
    ) -> Projection:
        """Projected balances over ``days`` (defaults to the configured horizon)."""
        if days is None:
            days = self.settings.projection_horizon_days
        return self.projections.get_projections(days=days, account_ids=account_ids, today=today)

    def get_candidate_matches(self) -> list[MatchCandidate]:
        """Reconciliation candidates, best first."""
        return self.matching.find_candidate_matches()

    def get_active_recommendations(self) -> list[Recommendation]:
        """Active liquidity recommendations."""
        return self.recommendations.list_active()

    # Forecast changes do not go through the bus; derived state is refreshed here
    def create_forecast(self, doc: SourceDocument) -> Optional[ForecastEvent]:
        """Create the forecast event of a document and refresh recommendations."""
        event = self.forecasts.create_from_document(doc)
        self.cascade.refresh_derived()
        return event

    def update_forecast(self, doc: SourceDocument) -> Optional[ForecastEvent]:
        """Sync the forecast event of a changed document and refresh recommendations."""
        event = self.forecasts.update_from_document(doc)
        self.cascade.refresh_derived()
        return event

    def refresh(self) -> None:
        """Recalculate every balance and rebuild risk flags and recommendations."""
        self.cascade.refresh()

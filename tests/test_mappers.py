"""Tests for database mappers."""

from datetime import datetime, date, UTC
from decimal import Decimal

from treasury.database.models import (
    Account as ORMAccount,
    Movement as ORMMovement,
    ForecastEvent as ORMForecastEvent,
    Recommendation as ORMRecommendation,
)
from treasury.database.mappers import (
    account_to_domain,
    movement_to_domain,
    forecast_event_to_domain,
    recommendation_to_domain,
    recommendation_to_orm,
)
from treasury.domain.entities import (
    Account,
    EventStatus,
    EventType,
    ForecastEvent,
    Movement,
    MovementStatus,
    ReconciliationState,
    Recommendation,
    RecommendationStatus,
    RecommendationType,
    Severity,
)


class TestAccountMapper:
    """Tests for Account mapper."""

    def test_account_to_domain(self):
        """Test converting ORM Account to domain Account."""
        now = datetime.now(UTC)
        orm_account = ORMAccount(
            id=1,
            name="Operations",
            bank_name="CaixaBank",
            iban="ES9121000418450200051332",
            opening_balance=Decimal("1000.00"),
            opening_balance_date=date(2024, 1, 1),
            balance=Decimal("1450.01"),
            minimum_balance=None,
            currency="EUR",
            is_active=True,
            is_at_risk=False,
            created_at=now,
            updated_at=now,
        )
        domain_account = account_to_domain(orm_account)

        assert isinstance(domain_account, Account)
        assert domain_account.id == 1
        assert domain_account.iban == "ES9121000418450200051332"
        assert domain_account.balance == Decimal("1450.01")
        assert domain_account.minimum_balance is None
        assert domain_account.created_at == now

    def test_account_to_domain_converts_floats(self):
        """Numeric values read back as floats still become Decimals."""
        orm_account = ORMAccount(
            id=2,
            name="Reserve",
            bank_name="Barclays",
            iban="GB82WEST12345698765432",
            opening_balance=0.1,
            opening_balance_date=date(2024, 1, 1),
            balance=0.3,
            minimum_balance=200,
            currency="GBP",
            is_active=False,
            is_at_risk=True,
        )
        domain_account = account_to_domain(orm_account)

        assert domain_account.opening_balance == Decimal("0.1")
        assert domain_account.balance == Decimal("0.3")
        assert domain_account.minimum_balance == Decimal("200")


class TestMovementMapper:
    """Tests for Movement mapper."""

    def test_movement_to_domain(self):
        """Test converting ORM Movement to domain Movement."""
        orm_movement = ORMMovement(
            id=7,
            account_id=1,
            date=date(2024, 3, 5),
            value_date=None,
            amount=Decimal("-49.99"),
            description="RECIBO IBERDROLA",
            counterparty="Iberdrola",
            reference=None,
            running_balance=Decimal("1450.01"),
            currency="EUR",
            status="pending",
            reconciliation_state="unreconciled",
            import_batch_id="abc",
            row_index=3,
            document_ids=["doc-1"],
            category=None,
        )
        movement = movement_to_domain(orm_movement)

        assert isinstance(movement, Movement)
        assert movement.status == MovementStatus.PENDING
        assert movement.reconciliation_state == ReconciliationState.UNRECONCILED
        assert movement.document_ids == ("doc-1",)
        assert movement.booking_date == date(2024, 3, 5)


class TestForecastEventMapper:
    """Tests for ForecastEvent mapper."""

    def test_forecast_event_to_domain(self):
        orm_event = ORMForecastEvent(
            id=3,
            event_type="income",
            amount=Decimal("1200.00"),
            predicted_date=date(2024, 3, 20),
            description="Client - INV-9",
            source_type="document",
            source_id="doc-9",
            account_id=None,
            iban=None,
            payment_method="transfer",
            status="predicted",
        )
        event = forecast_event_to_domain(orm_event)

        assert isinstance(event, ForecastEvent)
        assert event.event_type == EventType.INCOME
        assert event.status == EventStatus.PREDICTED
        assert event.signed_amount == Decimal("1200.00")
        assert event.actual_amount is None


class TestRecommendationMapper:
    """Tests for Recommendation mappers."""

    def test_round_trip(self):
        rec = Recommendation(
            id="rec_0123456789ab",
            rec_type=RecommendationType.ALERT,
            severity=Severity.CRITICAL,
            source_account_id=None,
            target_account_id=1,
            suggested_amount=Decimal("300"),
            suggested_date=date(2024, 4, 1),
            title="Insufficient liquidity",
            description="No other account can cover 300 EUR.",
            status=RecommendationStatus.ACTIVE,
            created_at=datetime.now(UTC),
        )
        orm_rec = recommendation_to_orm(rec)

        assert isinstance(orm_rec, ORMRecommendation)
        assert orm_rec.rec_type == "alert"
        assert orm_rec.severity == "critical"
        assert recommendation_to_domain(orm_rec) == rec

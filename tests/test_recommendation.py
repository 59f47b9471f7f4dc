"""Tests for liquidity recommendations."""

import re
from datetime import date, timedelta
from decimal import Decimal

import pytest

from treasury.cli.main import cli
from treasury.domain.entities import RecommendationStatus, RecommendationType, Severity
from treasury.domain.errors import NotFoundError, ValidationError
from treasury.domain.projection import ProjectionService
from treasury.domain.recommendation import RecommendationGenerator, round_up


TODAY = date(2024, 3, 1)


def _expense(db, account_id, amount, days_ahead=10, source_id="doc-1"):
    return db.create_forecast_event(
        event_type="expense",
        amount=Decimal(amount),
        predicted_date=TODAY + timedelta(days=days_ahead),
        description="Supplier invoice",
        source_type="document",
        source_id=source_id,
        payment_method="direct_debit",
        account_id=account_id,
    )


def _generator(db, **kwargs):
    return RecommendationGenerator(db, ProjectionService(db), **kwargs)


@pytest.mark.parametrize(
    "amount, step, expected",
    [("50", "100", "100"), ("100", "100", "100"), ("100.01", "100", "200"), ("0.5", "1", "1")],
)
def test_round_up(amount, step, expected):
    assert round_up(Decimal(amount), Decimal(step)) == Decimal(expected)


class TestPlan:
    """Tests for computing the recommendation set."""

    def test_transfer_from_richest_account(self, temp_db, sample_account, reserve_account):
        """€1000 balance, €850 expense, €200 minimum: transfer €100."""
        _expense(temp_db, sample_account.id, "850")

        plan = _generator(temp_db).plan(today=TODAY)

        assert len(plan) == 1
        rec = plan[0]
        assert rec.rec_type == RecommendationType.TRANSFER
        assert rec.severity == Severity.WARNING
        assert rec.source_account_id == reserve_account.id
        assert rec.target_account_id == sample_account.id
        assert rec.suggested_amount == Decimal("100")
        assert rec.suggested_date == TODAY + timedelta(days=25)
        assert rec.status == RecommendationStatus.ACTIVE
        assert rec.id.startswith("rec_")
        assert "Reserve" in rec.title

    def test_critical_when_projected_negative(self, temp_db, sample_account, reserve_account):
        _expense(temp_db, sample_account.id, "1500")

        rec = _generator(temp_db).plan(today=TODAY)[0]

        assert rec.severity == Severity.CRITICAL
        assert rec.suggested_amount == Decimal("700")

    def test_alert_without_source(self, temp_db, sample_account):
        _expense(temp_db, sample_account.id, "850")

        plan = _generator(temp_db).plan(today=TODAY)

        assert len(plan) == 1
        assert plan[0].rec_type == RecommendationType.ALERT
        assert plan[0].source_account_id is None

    def test_alert_when_source_cannot_cover(self, temp_db, sample_account, reserve_account):
        _expense(temp_db, sample_account.id, "850")
        _expense(temp_db, reserve_account.id, "4950", source_id="doc-2")

        plan = _generator(temp_db).plan(today=TODAY)

        # Neither account can cover the other's deficit
        assert [(rec.target_account_id, rec.rec_type) for rec in plan] == [
            (sample_account.id, RecommendationType.ALERT),
            (reserve_account.id, RecommendationType.ALERT),
        ]

    def test_alerts_can_be_disabled(self, temp_db, sample_account):
        _expense(temp_db, sample_account.id, "850")

        assert _generator(temp_db, emit_liquidity_alerts=False).plan(today=TODAY) == []

    def test_healthy_accounts_get_nothing(self, temp_db, sample_account, reserve_account):
        _expense(temp_db, sample_account.id, "100")

        assert _generator(temp_db).plan(today=TODAY) == []

    def test_ties_prefer_lowest_account_id(self, temp_db, account_service, sample_account):
        first = account_service.create_account(
            name="A", bank_name="Bank", iban="GB82WEST12345698765432", opening_balance=Decimal("3000")
        )
        account_service.create_account(
            name="B", bank_name="Bank", iban="DE89370400440532013000", opening_balance=Decimal("3000")
        )
        _expense(temp_db, sample_account.id, "850")

        rec = _generator(temp_db).plan(today=TODAY)[0]

        assert rec.source_account_id == first


class TestRegenerate:
    """Tests for storing and dismissing recommendations."""

    def test_regenerate_replaces_active_set(self, temp_db, sample_account, reserve_account):
        generator = _generator(temp_db)
        _expense(temp_db, sample_account.id, "850")

        first = generator.regenerate(today=TODAY)
        second = generator.regenerate(today=TODAY)

        active = generator.list_active()
        assert [r.id for r in active] == [second[0].id]
        assert first[0].id != second[0].id

    def test_dismissed_recommendation_returns_while_deficit_persists(self, temp_db, sample_account, reserve_account):
        generator = _generator(temp_db)
        _expense(temp_db, sample_account.id, "850")
        rec = generator.regenerate(today=TODAY)[0]

        generator.dismiss(rec.id)
        assert generator.list_active() == []

        replanned = generator.regenerate(today=TODAY)
        assert len(replanned) == 1
        assert replanned[0].id != rec.id
        assert replanned[0].suggested_amount == Decimal("100")
        assert [r.id for r in generator.list_active()] == [replanned[0].id]
        assert temp_db.get_recommendation(rec.id).status == RecommendationStatus.DISMISSED

    def test_dismiss_errors(self, temp_db, sample_account, reserve_account):
        generator = _generator(temp_db)
        _expense(temp_db, sample_account.id, "850")
        rec = generator.regenerate(today=TODAY)[0]
        generator.dismiss(rec.id)

        with pytest.raises(ValidationError, match="already dismissed"):
            generator.dismiss(rec.id)
        with pytest.raises(NotFoundError):
            generator.dismiss("rec_missing")


def test_cascade_rebuilds_recommendations(engine, sample_account, reserve_account):
    """A movement that drains the account produces a recommendation right away."""
    engine.movements.create_movement(sample_account.id, date.today(), Decimal("-900"), "Tax payment")

    recommendations = engine.get_active_recommendations()
    assert len(recommendations) == 1
    assert recommendations[0].suggested_amount == Decimal("100")

    engine.movements.create_movement(sample_account.id, date.today(), Decimal("500"), "Client payment")
    assert engine.get_active_recommendations() == []


def test_recommend_commands(cli_runner, temp_db, sample_account, reserve_account, movement_service):
    movement_service.create_movement(sample_account.id, date.today(), Decimal("-900"), "Tax payment")

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "recommend", "list"])
    assert result.exit_code == 0
    assert "transfer" in result.output
    rec_id = re.search(r"rec_[0-9a-f]{12}", result.output).group(0)

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "recommend", "dismiss", rec_id])
    assert result.exit_code == 0
    assert f"Dismissed recommendation {rec_id}" in result.output

    # The deficit is still there, so the next run proposes it again
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "recommend", "regenerate"])
    assert result.exit_code == 0
    assert "transfer" in result.output
    assert rec_id not in result.output


def test_returning_deficit_is_recommended_again(engine, sample_account, reserve_account):
    """A dismissed suggestion does not hide a deficit that comes back."""
    engine.movements.create_movement(sample_account.id, date.today(), Decimal("-850"), "Supplier")
    engine.recommendations.dismiss(engine.get_active_recommendations()[0].id)

    engine.movements.create_movement(sample_account.id, date.today(), Decimal("850"), "Refund")
    assert engine.get_active_recommendations() == []
    engine.movements.create_movement(sample_account.id, date.today(), Decimal("-850"), "Supplier again")

    account = engine.accounts.get_account(sample_account.id)
    assert account.balance == Decimal("150")
    assert account.is_at_risk is True
    recommendations = engine.get_active_recommendations()
    assert len(recommendations) == 1
    assert recommendations[0].source_account_id == reserve_account.id


def test_imported_debit_triggers_warning(engine, sample_account, reserve_account, write_statement):
    """Importing an €850 debit dated today leaves 150 and one warning transfer."""
    today = date.today().isoformat()
    path = write_statement(f"Date,Description,Amount\n{today},PAGO PROVEEDOR,-850.00\n")

    result = engine.imports.import_file(path, sample_account.id)

    assert result.inserted == 1
    assert engine.accounts.get_account(sample_account.id).balance == Decimal("150")
    recommendations = engine.get_active_recommendations()
    assert len(recommendations) == 1
    rec = recommendations[0]
    assert rec.rec_type == RecommendationType.TRANSFER
    assert rec.severity == Severity.WARNING
    assert rec.target_account_id == sample_account.id
    assert rec.source_account_id == reserve_account.id
    assert rec.suggested_amount == Decimal("100")

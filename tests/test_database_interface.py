"""Tests for the ledger store interface returning domain models."""

import pytest
from datetime import date, datetime, UTC
from decimal import Decimal

from treasury.domain import entities
from treasury.domain.entities import NewMovement
from treasury.domain.errors import ConflictError, DependencyError, NotFoundError
from conftest import IBAN_DE, IBAN_ES, IBAN_GB


def _create_account(db, iban=IBAN_ES, name="Operations", opening=Decimal("1000")):
    return db.create_account(
        name=name,
        bank_name="Test Bank",
        iban=iban,
        opening_balance=opening,
        opening_balance_date=date(2024, 1, 1),
    )


def _create_movement(db, account_id, amount="-10.00", **kwargs):
    values = dict(account_id=account_id, date=date(2024, 3, 1), amount=Decimal(amount), description="Test")
    values.update(kwargs)
    return db.create_movement(NewMovement(**values))


def _create_event(db, account_id=None, source_id="doc-1", amount="49.99"):
    return db.create_forecast_event(
        event_type="expense",
        amount=Decimal(amount),
        predicted_date=date(2024, 3, 10),
        description="Iberdrola - INV-1",
        source_type="document",
        source_id=source_id,
        payment_method="direct_debit",
        account_id=account_id,
    )


def _recommendation(rec_id, target_id, status=entities.RecommendationStatus.ACTIVE):
    return entities.Recommendation(
        id=rec_id,
        rec_type=entities.RecommendationType.TRANSFER,
        severity=entities.Severity.WARNING,
        source_account_id=None,
        target_account_id=target_id,
        suggested_amount=Decimal("100"),
        suggested_date=date(2024, 4, 1),
        title="Transfer",
        description="Transfer funds",
        status=status,
        created_at=datetime.now(UTC),
    )


class TestAccountStorage:
    """Tests for account persistence."""

    def test_get_account_returns_domain_model(self, temp_db):
        """Test that get_account returns a domain Account entity."""
        account_id = _create_account(temp_db)

        account = temp_db.get_account(account_id)

        assert isinstance(account, entities.Account)
        assert account.id == account_id
        assert account.iban == IBAN_ES
        assert account.balance == Decimal("1000")
        assert account.opening_balance == Decimal("1000")
        assert account.is_active is True
        assert account.is_at_risk is False
        assert isinstance(account.created_at, datetime)

    def test_get_missing_account_returns_none(self, temp_db):
        assert temp_db.get_account(999) is None

    def test_get_account_by_iban(self, temp_db):
        account_id = _create_account(temp_db)
        assert temp_db.get_account_by_iban(IBAN_ES).id == account_id
        assert temp_db.get_account_by_iban(IBAN_GB) is None

    def test_list_accounts_excludes_inactive_on_request(self, temp_db):
        """Test that list_accounts can hide deactivated accounts."""
        first = _create_account(temp_db)
        second = _create_account(temp_db, iban=IBAN_GB, name="Reserve")
        temp_db.set_account_active(second, False)

        assert [a.id for a in temp_db.list_accounts()] == [first, second]
        assert [a.id for a in temp_db.list_accounts(include_inactive=False)] == [first]
        assert temp_db.get_account(second).deactivated_at is not None

    def test_update_account_rejects_taken_iban(self, temp_db):
        _create_account(temp_db)
        second = _create_account(temp_db, iban=IBAN_GB, name="Reserve")

        with pytest.raises(ConflictError):
            temp_db.update_account(second, iban=IBAN_ES)

    def test_update_account_missing_raises(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.update_account(42, name="Nope")

    def test_delete_account_with_movements_is_blocked(self, temp_db):
        account_id = _create_account(temp_db)
        _create_movement(temp_db, account_id)

        with pytest.raises(DependencyError):
            temp_db.delete_account(account_id)
        assert temp_db.get_account(account_id) is not None

    def test_delete_account_cascade_summary(self, temp_db):
        """Test that cascading delete removes dependents and unlinks events."""
        account_id = _create_account(temp_db)
        other_id = _create_account(temp_db, iban=IBAN_DE, name="Other")
        _create_movement(temp_db, account_id)
        _create_movement(temp_db, account_id, amount="25.00")
        kept_movement = _create_movement(temp_db, other_id)
        temp_db.upsert_rule(account_id, "key", "acme", "invoice", "debit", "Supplies")
        event_id = _create_event(temp_db, account_id=account_id)
        temp_db.replace_active_recommendations([_recommendation("rec_a", account_id)])

        summary = temp_db.delete_account_cascade(account_id)

        assert summary == {
            "movements": 2,
            "rules": 1,
            "recommendations": 1,
            "forecast_events_unlinked": 1,
        }
        assert temp_db.get_account(account_id) is None
        assert temp_db.list_movements(account_id=account_id) == []
        assert temp_db.get_movement(kept_movement) is not None
        assert temp_db.get_forecast_event(event_id).account_id is None


class TestMovementStorage:
    """Tests for movement persistence."""

    def test_get_movement_returns_domain_model(self, temp_db):
        account_id = _create_account(temp_db)
        movement_id = _create_movement(
            temp_db,
            account_id,
            amount="-49.99",
            value_date=date(2024, 3, 2),
            counterparty="Iberdrola",
            status=entities.MovementStatus.PENDING,
        )

        movement = temp_db.get_movement(movement_id)

        assert isinstance(movement, entities.Movement)
        assert movement.amount == Decimal("-49.99")
        assert movement.status == entities.MovementStatus.PENDING
        assert movement.reconciliation_state == entities.ReconciliationState.UNRECONCILED
        assert movement.booking_date == date(2024, 3, 2)
        assert movement.document_ids == ()

    def test_list_movements_filters(self, temp_db):
        account_id = _create_account(temp_db)
        early = _create_movement(temp_db, account_id, date=date(2024, 2, 1))
        late = _create_movement(temp_db, account_id, date=date(2024, 4, 1), import_batch_id="batch-1")

        assert [m.id for m in temp_db.list_movements(start_date=date(2024, 3, 1))] == [late]
        assert [m.id for m in temp_db.list_movements(end_date=date(2024, 3, 1))] == [early]
        assert [m.id for m in temp_db.list_movements(import_batch_id="batch-1")] == [late]
        assert temp_db.list_movements(reconciliation_state="reconciled") == []

    def test_attach_document_is_idempotent(self, temp_db):
        account_id = _create_account(temp_db)
        movement_id = _create_movement(temp_db, account_id)

        temp_db.attach_document(movement_id, "doc-1")
        temp_db.attach_document(movement_id, "doc-1")
        temp_db.attach_document(movement_id, "doc-2")

        assert temp_db.get_movement(movement_id).document_ids == ("doc-1", "doc-2")

    def test_delete_missing_movement_raises(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.delete_movement(123)


class TestReconcileStorage:
    """Tests for the combined reconcile write."""

    def test_reconcile_updates_both_sides(self, temp_db):
        account_id = _create_account(temp_db)
        movement_id = _create_movement(
            temp_db, account_id, amount="-50.00", status=entities.MovementStatus.PENDING
        )
        event_id = _create_event(temp_db, account_id=account_id)

        temp_db.reconcile(event_id, movement_id, date(2024, 3, 11), Decimal("50.00"), document_id="doc-1")

        event = temp_db.get_forecast_event(event_id)
        movement = temp_db.get_movement(movement_id)
        assert event.status == entities.EventStatus.EXECUTED
        assert event.movement_id == movement_id
        assert event.actual_date == date(2024, 3, 11)
        assert event.actual_amount == Decimal("50.00")
        assert movement.reconciliation_state == entities.ReconciliationState.RECONCILED
        assert movement.status == entities.MovementStatus.CONFIRMED
        assert movement.document_ids == ("doc-1",)

    def test_reconcile_missing_movement_changes_nothing(self, temp_db):
        event_id = _create_event(temp_db)

        with pytest.raises(NotFoundError):
            temp_db.reconcile(event_id, 999, date(2024, 3, 11), Decimal("50.00"))

        assert temp_db.get_forecast_event(event_id).status == entities.EventStatus.PREDICTED


class TestRecommendationStorage:
    """Tests for recommendation replacement."""

    def test_replace_active_recommendations_keeps_dismissed(self, temp_db):
        account_id = _create_account(temp_db)
        temp_db.replace_active_recommendations([_recommendation("rec_a", account_id), _recommendation("rec_b", account_id)])
        temp_db.set_recommendation_status("rec_a", "dismissed")

        temp_db.replace_active_recommendations([_recommendation("rec_c", account_id)])

        active = temp_db.list_recommendations(status="active")
        dismissed = temp_db.list_recommendations(status="dismissed")
        assert [r.id for r in active] == ["rec_c"]
        assert [r.id for r in dismissed] == ["rec_a"]
        assert temp_db.get_recommendation("rec_b") is None
        assert isinstance(active[0], entities.Recommendation)


class TestRuleStorage:
    """Tests for automation rule upserts."""

    def test_upsert_rule_updates_existing_key(self, temp_db):
        account_id = _create_account(temp_db)

        first = temp_db.upsert_rule(account_id, "acme|invoice|debit", "acme", "invoice", "debit", "Supplies")
        second = temp_db.upsert_rule(account_id, "acme|invoice|debit", "acme", "invoice", "debit", "Office")

        assert first == second
        rule = temp_db.get_rule(first)
        assert isinstance(rule, entities.AutomationRule)
        assert rule.category == "Office"
        assert rule.applied_count == 2

    def test_record_rule_applied(self, temp_db):
        account_id = _create_account(temp_db)
        rule_id = temp_db.upsert_rule(account_id, "k", "", "fee", "debit", "Fees")

        temp_db.record_rule_applied(rule_id, 3)

        rule = temp_db.get_rule(rule_id)
        assert rule.applied_count == 4
        assert rule.last_applied_at is not None

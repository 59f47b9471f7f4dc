"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the ledger schema can change
without touching the domain services.
"""

from decimal import Decimal
from typing import Optional

from treasury.domain import entities as domain
from treasury.database.models import (
    Account as ORMAccount,
    Movement as ORMMovement,
    ImportBatch as ORMImportBatch,
    ForecastEvent as ORMForecastEvent,
    Recommendation as ORMRecommendation,
    AutomationRule as ORMAutomationRule,
)


def _decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        iban=orm_account.iban,
        opening_balance=_decimal(orm_account.opening_balance),
        opening_balance_date=orm_account.opening_balance_date,
        balance=_decimal(orm_account.balance),
        minimum_balance=_decimal(orm_account.minimum_balance),
        currency=orm_account.currency,
        is_active=orm_account.is_active,
        is_at_risk=orm_account.is_at_risk,
        deactivated_at=orm_account.deactivated_at,
        created_at=orm_account.created_at,
        updated_at=orm_account.updated_at,
    )


def movement_to_domain(orm_movement: ORMMovement) -> domain.Movement:
    """Convert SQLAlchemy Movement model to domain Movement entity."""
    return domain.Movement(
        id=orm_movement.id,
        account_id=orm_movement.account_id,
        date=orm_movement.date,
        value_date=orm_movement.value_date,
        amount=_decimal(orm_movement.amount),
        description=orm_movement.description or "",
        counterparty=orm_movement.counterparty,
        reference=orm_movement.reference,
        running_balance=_decimal(orm_movement.running_balance),
        currency=orm_movement.currency,
        status=domain.MovementStatus(orm_movement.status),
        reconciliation_state=domain.ReconciliationState(orm_movement.reconciliation_state),
        import_batch_id=orm_movement.import_batch_id,
        row_index=orm_movement.row_index,
        document_ids=tuple(orm_movement.document_ids or ()),
        category=orm_movement.category,
        created_at=orm_movement.created_at,
        updated_at=orm_movement.updated_at,
    )


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatch:
    """Convert SQLAlchemy ImportBatch model to domain ImportBatch entity."""
    return domain.ImportBatch(
        id=orm_batch.id,
        filename=orm_batch.filename,
        detected_format=orm_batch.detected_format,
        detected_bank=orm_batch.detected_bank,
        account_id=orm_batch.account_id,
        account_iban=orm_batch.account_iban,
        date_from=orm_batch.date_from,
        date_to=orm_batch.date_to,
        total_rows=orm_batch.total_rows,
        imported_rows=orm_batch.imported_rows,
        duplicate_rows=orm_batch.duplicate_rows,
        error_rows=orm_batch.error_rows,
        content_hash=orm_batch.content_hash,
        actor=orm_batch.actor,
        imported_at=orm_batch.imported_at,
    )


def forecast_event_to_domain(orm_event: ORMForecastEvent) -> domain.ForecastEvent:
    """Convert SQLAlchemy ForecastEvent model to domain ForecastEvent entity."""
    return domain.ForecastEvent(
        id=orm_event.id,
        event_type=domain.EventType(orm_event.event_type),
        amount=_decimal(orm_event.amount),
        predicted_date=orm_event.predicted_date,
        description=orm_event.description or "",
        source_type=orm_event.source_type,
        source_id=orm_event.source_id,
        account_id=orm_event.account_id,
        iban=orm_event.iban,
        payment_method=orm_event.payment_method,
        status=domain.EventStatus(orm_event.status),
        movement_id=orm_event.movement_id,
        actual_date=orm_event.actual_date,
        actual_amount=_decimal(orm_event.actual_amount),
        created_at=orm_event.created_at,
        updated_at=orm_event.updated_at,
    )


def recommendation_to_domain(orm_rec: ORMRecommendation) -> domain.Recommendation:
    """Convert SQLAlchemy Recommendation model to domain Recommendation entity."""
    return domain.Recommendation(
        id=orm_rec.id,
        rec_type=domain.RecommendationType(orm_rec.rec_type),
        severity=domain.Severity(orm_rec.severity),
        source_account_id=orm_rec.source_account_id,
        target_account_id=orm_rec.target_account_id,
        suggested_amount=_decimal(orm_rec.suggested_amount),
        suggested_date=orm_rec.suggested_date,
        title=orm_rec.title,
        description=orm_rec.description,
        status=domain.RecommendationStatus(orm_rec.status),
        created_at=orm_rec.created_at,
    )


def recommendation_to_orm(rec: domain.Recommendation) -> ORMRecommendation:
    """Convert a domain Recommendation into a new SQLAlchemy row."""
    return ORMRecommendation(
        id=rec.id,
        rec_type=rec.rec_type.value,
        severity=rec.severity.value,
        source_account_id=rec.source_account_id,
        target_account_id=rec.target_account_id,
        suggested_amount=rec.suggested_amount,
        suggested_date=rec.suggested_date,
        title=rec.title,
        description=rec.description,
        status=rec.status.value,
        created_at=rec.created_at,
    )


def automation_rule_to_domain(orm_rule: ORMAutomationRule) -> domain.AutomationRule:
    """Convert SQLAlchemy AutomationRule model to domain AutomationRule entity."""
    return domain.AutomationRule(
        id=orm_rule.id,
        account_id=orm_rule.account_id,
        learn_key=orm_rule.learn_key,
        counterparty_pattern=orm_rule.counterparty_pattern,
        description_pattern=orm_rule.description_pattern,
        amount_sign=orm_rule.amount_sign,
        category=orm_rule.category,
        applied_count=orm_rule.applied_count,
        created_at=orm_rule.created_at,
        last_applied_at=orm_rule.last_applied_at,
    )

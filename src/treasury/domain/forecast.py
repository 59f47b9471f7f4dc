"""Forecast events derived from source documents."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import structlog

from treasury.database.base import LedgerStore
from treasury.domain.entities import EventStatus, EventType, ForecastEvent
from treasury.utils.amount_parser import parse_amount
from treasury.utils.date_parser import parse_date
from treasury.utils.iban import normalize_iban

logger = structlog.get_logger(__name__)

DEFAULT_PAYMENT_METHOD = "direct_debit"
SOURCE_TYPE_DOCUMENT = "document"

# Keys accepted by SourceDocument.from_dict, with the field they populate
_DOCUMENT_KEYS = {
    "id": "id",
    "document_id": "id",
    "filename": "filename",
    "amount": "amount",
    "total": "amount",
    "predicted_payment_date": "predicted_payment_date",
    "predictedPaymentDate": "predicted_payment_date",
    "due_date": "due_date",
    "dueDate": "due_date",
    "invoice_number": "invoice_number",
    "invoiceNumber": "invoice_number",
    "supplier": "supplier",
    "proveedor": "supplier",
    "payment_method": "payment_method",
    "paymentMethod": "payment_method",
    "iban": "iban",
    "fiscal_type": "fiscal_type",
    "fiscalType": "fiscal_type",
    "event_type": "event_type",
    "type": "event_type",
}


def is_capex_type(fiscal_type: Optional[str]) -> bool:
    """Capital expenditure changes asset value, not cash flow."""
    return bool(fiscal_type) and fiscal_type.strip().lower().startswith("capex")


@dataclass(frozen=True)
class SourceDocument:
    """Financial data extracted from a classified document."""

    id: str
    filename: str
    amount: Optional[Decimal]
    event_type: EventType = EventType.EXPENSE
    predicted_payment_date: Optional[date] = None
    due_date: Optional[date] = None
    invoice_number: Optional[str] = None
    supplier: Optional[str] = None
    payment_method: Optional[str] = None
    iban: Optional[str] = None
    fiscal_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceDocument":
        """Build a document from a mapping such as a parsed JSON file.

        Raises:
            ValueError: If the id is missing or a date or amount cannot be parsed
        """
        values: dict[str, Any] = {}
        for key, value in data.items():
            target = _DOCUMENT_KEYS.get(key)
            if target is not None and value not in (None, "") and target not in values:
                values[target] = value

        if "id" not in values:
            raise ValueError("Document id is required")
        values["id"] = str(values["id"])
        values.setdefault("filename", values["id"])

        if "amount" in values:
            values["amount"] = parse_amount(str(values["amount"]))
        for key in ("predicted_payment_date", "due_date"):
            if key in values:
                values[key] = parse_date(values[key])
        if "event_type" in values:
            raw = str(values["event_type"]).lower()
            values["event_type"] = EventType.INCOME if raw in ("income", "ingreso") else EventType.EXPENSE
        values.setdefault("amount", None)
        return cls(**values)


class ForecastEventFactory:
    """Creates and maintains forecast events for source documents."""

    def __init__(self, db: LedgerStore):
        """Initialize forecast event factory.

        Args:
            db: Ledger store instance
        """
        self.db = db

    def _resolve_account(self, iban: Optional[str]) -> tuple[Optional[str], Optional[int]]:
        if not iban:
            return None, None
        normalized = normalize_iban(iban)
        account = self.db.get_account_by_iban(normalized)
        return normalized, account.id if account is not None else None

    @staticmethod
    def _describe(doc: SourceDocument) -> str:
        return f"{doc.supplier or 'Invoice'} - {doc.invoice_number or doc.filename}"

    @staticmethod
    def _skip_reason(doc: SourceDocument) -> Optional[str]:
        if doc.amount is None or doc.amount <= 0:
            return "no_positive_amount"
        if is_capex_type(doc.fiscal_type):
            return "capital_expenditure"
        return None

    def create_from_document(self, doc: SourceDocument, today: Optional[date] = None) -> Optional[ForecastEvent]:
        """Create the forecast event for a document.

        Documents without a positive amount and capital-expenditure documents
        produce no event. A document that already has an event gets it back
        unchanged.

        Args:
            doc: Source document
            today: Fallback predicted date (defaults to today)

        Returns:
            The forecast event, or None when the document produces none
        """
        reason = self._skip_reason(doc)
        if reason is not None:
            logger.info("forecast_event_skipped", document_id=doc.id, reason=reason)
            return None

        existing = self.db.list_forecast_events(source_id=doc.id)
        if existing:
            return existing[0]

        iban, account_id = self._resolve_account(doc.iban)
        event_id = self.db.create_forecast_event(
            event_type=doc.event_type.value,
            amount=doc.amount,
            predicted_date=doc.predicted_payment_date or doc.due_date or today or date.today(),
            description=self._describe(doc),
            source_type=SOURCE_TYPE_DOCUMENT,
            source_id=doc.id,
            payment_method=doc.payment_method or DEFAULT_PAYMENT_METHOD,
            account_id=account_id,
            iban=iban,
        )
        logger.info("forecast_event_created", event_id=event_id, document_id=doc.id, account_id=account_id)
        return self.db.get_forecast_event(event_id)

    def update_from_document(self, doc: SourceDocument, today: Optional[date] = None) -> Optional[ForecastEvent]:
        """Bring the events of a document in line with its current data.

        Predicted events are updated in place; executed ones are left as they
        are. Without an existing event this creates one.

        Args:
            doc: Source document
            today: Fallback predicted date for creation (defaults to today)

        Returns:
            The updated (or created) forecast event, or None when the
            document produces none
        """
        existing = self.db.list_forecast_events(source_id=doc.id)
        if not existing:
            return self.create_from_document(doc, today=today)

        reason = self._skip_reason(doc)
        if reason is not None:
            logger.info("forecast_event_update_skipped", document_id=doc.id, reason=reason)
            return None

        iban, account_id = self._resolve_account(doc.iban)
        updated = None
        for event in existing:
            if event.status == EventStatus.EXECUTED:
                logger.info("forecast_event_already_executed", event_id=event.id, document_id=doc.id)
                continue
            self.db.update_forecast_event(
                event.id,
                amount=doc.amount,
                predicted_date=doc.predicted_payment_date or doc.due_date or event.predicted_date,
                description=self._describe(doc),
                payment_method=doc.payment_method or event.payment_method,
                # A document without an IBAN keeps the event's account link
                iban=iban if doc.iban else event.iban,
                account_id=account_id if doc.iban else event.account_id,
            )
            updated = self.db.get_forecast_event(event.id)
            logger.info("forecast_event_updated", event_id=event.id, document_id=doc.id)

        return updated or existing[0]

    def get_event(self, event_id: int) -> Optional[ForecastEvent]:
        """Get forecast event by ID."""
        return self.db.get_forecast_event(event_id)

    def list_events(self, status: Optional[str] = None, account_id: Optional[int] = None) -> list[ForecastEvent]:
        """List forecast events, optionally filtered by status and account."""
        return self.db.list_forecast_events(status=status, account_id=account_id)

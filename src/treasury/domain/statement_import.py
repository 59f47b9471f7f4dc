"""Bank statement import service."""

import hashlib
import uuid
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import date, datetime, UTC
from decimal import Decimal
from pathlib import Path
from typing import Optional

import structlog

from treasury.database.base import LedgerStore
from treasury.domain import errors
from treasury.domain.account import AccountService
from treasury.domain.entities import (
    ImportBatch,
    Movement,
    MovementStatus,
    NewMovement,
    ReconciliationState,
)
from treasury.domain.events import DomainEvent, DomainEventBus, EventKind
from treasury.domain.matching import MatchingEngine
from treasury.domain.rules import RuleService
from treasury.domain.statement_parser import (
    CREDIT,
    DEBIT,
    BankStatementParser,
    ParsedRow,
    StatementParser,
)

logger = structlog.get_logger(__name__)

SUPPORTED_FORMATS = {".csv": "CSV", ".xls": "XLS", ".xlsx": "XLSX"}
DUPLICATE_AMOUNT_TOLERANCE = Decimal("0.01")


@dataclass
class ImportResult:
    """Summary of one statement import."""

    batch_id: str
    inserted: int = 0
    duplicates: int = 0
    failed: int = 0
    reconciled: int = 0
    pending_review: int = 0
    categorized: int = 0
    errors: list[str] = field(default_factory=list)


def content_hash(content: bytes) -> str:
    """SHA-256 hex digest of the raw file bytes."""
    return hashlib.sha256(content).hexdigest()


def detect_format(filename: str) -> str:
    """Statement format from the file extension.

    Raises:
        UnsupportedFormatError: If the extension is not CSV, XLS or XLSX
    """
    file_format = SUPPORTED_FORMATS.get(Path(filename).suffix.lower())
    if file_format is None:
        raise errors.UnsupportedFormatError(errors.unsupported_format(filename))
    return file_format


def normalize_sign(row: ParsedRow) -> Decimal:
    """Debits negative, credits positive, whatever the file's own convention."""
    if row.direction == DEBIT:
        return -abs(row.amount)
    if row.direction == CREDIT:
        return abs(row.amount)
    return row.amount


def _description_key(description: str) -> str:
    return " ".join((description or "").split()).casefold()


class ImportService:
    """Service for importing bank statement files into an account."""

    def __init__(
        self,
        db: LedgerStore,
        bus: Optional[DomainEventBus] = None,
        parser: Optional[StatementParser] = None,
        matching_engine: Optional[MatchingEngine] = None,
        rule_service: Optional[RuleService] = None,
    ):
        """Initialize import service.

        Args:
            db: Ledger store instance
            bus: Event bus receiving MOVEMENT_CREATED events (optional)
            parser: Statement parser (defaults to BankStatementParser)
            matching_engine: Engine for the post-import reconciliation pass
                (optional; without it no automatic reconciliation happens)
            rule_service: Rule service categorizing new movements
        """
        self.db = db
        self.bus = bus
        self.parser = parser or BankStatementParser()
        self.matching_engine = matching_engine
        self.rule_service = rule_service or RuleService(db)
        self.account_service = AccountService(db, bus)

    def import_file(
        self,
        file_path: str | Path,
        account_id: int,
        skip_duplicates: bool = True,
        actor: str = "system",
    ) -> ImportResult:
        """Import a statement file from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Statement file not found: {file_path}")
        return self.import_statement(path.name, path.read_bytes(), account_id, skip_duplicates, actor)

    def import_statement(
        self,
        filename: str,
        content: bytes,
        account_id: int,
        skip_duplicates: bool = True,
        actor: str = "system",
    ) -> ImportResult:
        """Import the bytes of a statement file.

        Args:
            filename: Original file name; its extension selects the format
            content: Raw file bytes
            account_id: Account receiving the movements
            skip_duplicates: Skip rows matching an existing movement
            actor: Who triggered the import, stored on the batch

        Returns:
            ImportResult with counts and row error messages

        Raises:
            InvalidAccountError: If the account is missing or inactive
            DuplicateImportError: If a file with the same bytes was imported before
            UnsupportedFormatError: If the format is not supported
            EmptyImportError: If no row could be parsed
        """
        account = self.account_service.require_active_account(account_id)

        digest = content_hash(content)
        previous = self.db.get_import_batch_by_hash(digest)
        if previous is not None:
            raise errors.DuplicateImportError(errors.duplicate_import(filename, previous.id))

        file_format = detect_format(filename)
        parsed = self.parser.parse(filename, content, file_format)
        if not parsed.rows:
            detail = f": {'; '.join(parsed.errors[:3])}" if parsed.errors else ""
            raise errors.EmptyImportError(f"No movements could be read from '{filename}'{detail}")

        if parsed.detected_iban and parsed.detected_iban != account.iban:
            logger.warning(
                "statement_iban_mismatch",
                account_id=account_id,
                account_iban=account.iban,
                detected_iban=parsed.detected_iban,
            )

        result = ImportResult(batch_id=uuid.uuid4().hex, failed=len(parsed.errors), errors=list(parsed.errors))
        existing = self._duplicate_index(self.db.list_movements(account_id=account_id))
        inserted: list[Movement] = []

        with self.bus.batch() if self.bus is not None else nullcontext():
            for row in parsed.rows:
                amount = normalize_sign(row)
                if self._is_duplicate(existing, row.date, amount, row.description):
                    result.duplicates += 1
                    if skip_duplicates:
                        continue

                movement_id = self.db.create_movement(
                    NewMovement(
                        account_id=account_id,
                        date=row.date,
                        amount=amount,
                        description=row.description,
                        value_date=row.value_date,
                        counterparty=row.counterparty,
                        reference=row.reference,
                        running_balance=row.balance,
                        currency=row.currency or account.currency,
                        status=MovementStatus.PENDING,
                        import_batch_id=result.batch_id,
                        row_index=row.row_index,
                    )
                )
                movement = self.db.get_movement(movement_id)
                inserted.append(movement)
                if self.bus is not None:
                    self.bus.publish(DomainEvent(kind=EventKind.MOVEMENT_CREATED, entity=movement))

            result.inserted = len(inserted)
            result.categorized = self.rule_service.apply_rules(account_id, inserted)

            dates = [m.date for m in inserted]
            self.db.create_import_batch(
                ImportBatch(
                    id=result.batch_id,
                    filename=filename,
                    detected_format=file_format,
                    detected_bank=parsed.detected_bank_key,
                    account_id=account_id,
                    account_iban=parsed.detected_iban or account.iban,
                    date_from=min(dates) if dates else None,
                    date_to=max(dates) if dates else None,
                    total_rows=parsed.total_rows,
                    imported_rows=result.inserted,
                    duplicate_rows=result.duplicates,
                    error_rows=result.failed,
                    content_hash=digest,
                    actor=actor,
                    imported_at=datetime.now(UTC),
                )
            )

        if inserted:
            self._auto_reconcile(result)

        logger.info(
            "import_completed",
            batch_id=result.batch_id,
            filename=filename,
            account_id=account_id,
            inserted=result.inserted,
            duplicates=result.duplicates,
            failed=result.failed,
            reconciled=result.reconciled,
            pending_review=result.pending_review,
        )
        return result

    def list_batches(self, account_id: Optional[int] = None) -> list[ImportBatch]:
        """List import batches, newest first."""
        return self.db.list_import_batches(account_id=account_id)

    def _auto_reconcile(self, result: ImportResult) -> None:
        if self.matching_engine is not None:
            try:
                outcome = self.matching_engine.auto_reconcile()
            except Exception:
                logger.exception("auto_reconciliation_failed", batch_id=result.batch_id)
            else:
                batch_movements = {
                    c.movement.id for c in outcome.reconciled if c.movement.import_batch_id == result.batch_id
                }
                result.reconciled = len(batch_movements)

        result.pending_review = len(
            self.db.list_movements(
                import_batch_id=result.batch_id,
                reconciliation_state=ReconciliationState.UNRECONCILED.value,
            )
        )

    @staticmethod
    def _duplicate_index(movements: list[Movement]) -> dict[tuple[date, str], list[Decimal]]:
        index: dict[tuple[date, str], list[Decimal]] = {}
        for movement in movements:
            index.setdefault((movement.date, _description_key(movement.description)), []).append(movement.amount)
        return index

    @staticmethod
    def _is_duplicate(
        index: dict[tuple[date, str], list[Decimal]], booked: date, amount: Decimal, description: str
    ) -> bool:
        amounts = index.get((booked, _description_key(description)), [])
        return any(abs(existing - amount) <= DUPLICATE_AMOUNT_TOLERANCE for existing in amounts)

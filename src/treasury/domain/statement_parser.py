"""Bank statement parsing.

A ``StatementParser`` turns the bytes of one statement file into normalized
rows. ``BankStatementParser`` handles CSV and XLSX exports with English or
Spanish column headers, a single signed amount column or separate debit and
credit columns, and optional preamble lines carrying the bank name and IBAN.
"""

import csv
import io
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Protocol

import openpyxl
import structlog

from treasury.domain import errors
from treasury.utils.amount_parser import parse_amount
from treasury.utils.date_parser import parse_date
from treasury.utils.iban import is_valid_iban, normalize_iban

logger = structlog.get_logger(__name__)

DEBIT = "debit"
CREDIT = "credit"

# Role -> header aliases. Checked in order, so value_date precedes date.
HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "value_date": ("value date", "fecha valor", "f valor", "valor"),
    "date": (
        "date", "booking date", "transaction date", "operation date", "fecha",
        "fecha operacion", "f operacion", "fecha contable",
    ),
    "amount": ("amount", "importe", "cantidad", "monto", "importe eur"),
    "debit": ("debit", "withdrawal", "money out", "cargo", "cargos", "debe"),
    "credit": ("credit", "deposit", "money in", "abono", "abonos", "haber"),
    "description": ("description", "details", "memo", "concepto", "descripcion", "detalle", "movimiento"),
    "counterparty": ("counterparty", "payee", "payer", "beneficiario", "ordenante", "contraparte"),
    "reference": ("reference", "ref", "referencia"),
    "balance": ("balance", "running balance", "saldo", "saldo disponible"),
    "currency": ("currency", "divisa", "moneda"),
}

KNOWN_BANKS = (
    "santander", "bbva", "caixabank", "sabadell", "bankinter", "ing", "openbank",
    "kutxabank", "unicaja", "abanca", "ibercaja", "revolut",
)

_HEADER_SEARCH_ROWS = 15
_IBAN_CANDIDATE = re.compile(r"\b[A-Z]{2}\d{2}(?:\s?[A-Z0-9]{4}){3,7}(?:\s?[A-Z0-9]{1,4})?\b")


@dataclass(frozen=True)
class ParsedRow:
    """One statement line with typed values."""

    row_index: int
    date: date
    amount: Decimal
    description: str
    counterparty: Optional[str] = None
    reference: Optional[str] = None
    balance: Optional[Decimal] = None
    value_date: Optional[date] = None
    currency: Optional[str] = None
    direction: Optional[str] = None


@dataclass
class ParseResult:
    """Rows, row errors and metadata of one parsed statement."""

    file_format: str
    rows: list[ParsedRow] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    total_rows: int = 0
    detected_bank_key: Optional[str] = None
    detected_iban: Optional[str] = None


class StatementParser(Protocol):
    """Anything that can turn statement bytes into rows."""

    def parse(self, filename: str, content: bytes, file_format: str) -> ParseResult: ...


def normalize_header(value: Any) -> str:
    """Lower-case header text without accents or punctuation."""
    text = unicodedata.normalize("NFKD", str(value or ""))
    text = "".join(ch for ch in text if not unicodedata.combining(ch)).lower()
    text = re.sub(r"[^\w\s]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def detect_columns(header: list[Any]) -> dict[str, int]:
    """Map roles to column indexes for a candidate header row."""
    cells = [normalize_header(cell) for cell in header]
    columns: dict[str, int] = {}
    taken: set[int] = set()

    # Exact alias matches first, then aliases contained as whole words
    for exact in (True, False):
        for role, aliases in HEADER_ALIASES.items():
            if role in columns:
                continue
            for index, cell in enumerate(cells):
                if index in taken or not cell:
                    continue
                if exact:
                    hit = cell in aliases
                else:
                    hit = any(f" {alias} " in f" {cell} " for alias in aliases)
                if hit:
                    columns[role] = index
                    taken.add(index)
                    break
    return columns


def _is_header(columns: dict[str, int]) -> bool:
    return "date" in columns and ("amount" in columns or "debit" in columns or "credit" in columns)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    return str(value).strip()


def _to_amount(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Could not parse amount '{value}'")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return parse_amount(str(value))


class BankStatementParser:
    """Default parser for CSV and XLSX bank exports."""

    def __init__(self, dayfirst: bool = True):
        """Initialize parser.

        Args:
            dayfirst: Read ambiguous numeric dates such as 03/04/2024 as day/month
        """
        self.dayfirst = dayfirst

    def parse(self, filename: str, content: bytes, file_format: str) -> ParseResult:
        """Parse a statement file.

        Args:
            filename: Original file name, used for bank detection
            content: Raw file bytes
            file_format: CSV, XLS or XLSX

        Returns:
            ParseResult with valid rows and row-level errors

        Raises:
            UnsupportedFormatError: For XLS files, which this parser cannot read
            ValidationError: If the file cannot be read or has no recognizable header
        """
        if file_format == "CSV":
            table = self._read_csv(content)
        elif file_format == "XLSX":
            table = self._read_xlsx(content)
        else:
            raise errors.UnsupportedFormatError(
                f"{file_format} statements need a dedicated parser; export the file as CSV or XLSX"
            )
        return self._parse_table(filename, table, file_format)

    def _read_csv(self, content: bytes) -> list[list[Any]]:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = content.decode("latin-1")

        sample = text[:4096]
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=";,\t|").delimiter
        except csv.Error:
            delimiter = ";" if sample.count(";") > sample.count(",") else ","

        return [row for row in csv.reader(io.StringIO(text), delimiter=delimiter)]

    def _read_xlsx(self, content: bytes) -> list[list[Any]]:
        try:
            wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except Exception as e:
            raise errors.ValidationError(f"Could not read XLSX file: {e}") from e
        try:
            return [list(row) for row in wb.active.iter_rows(values_only=True)]
        finally:
            wb.close()

    def _parse_table(self, filename: str, table: list[list[Any]], file_format: str) -> ParseResult:
        header_index = None
        columns: dict[str, int] = {}
        for index, row in enumerate(table[:_HEADER_SEARCH_ROWS]):
            candidate = detect_columns(row)
            if _is_header(candidate):
                header_index, columns = index, candidate
                break

        if header_index is None:
            raise errors.ValidationError("Could not find a header row with date and amount columns")

        preamble = " ".join(str(cell) for row in table[:header_index] for cell in row if not _is_blank(cell))
        result = ParseResult(
            file_format=file_format,
            detected_bank_key=self._detect_bank(f"{filename} {preamble}"),
            detected_iban=self._detect_iban(preamble),
        )

        for index in range(header_index + 1, len(table)):
            row = table[index]
            if all(_is_blank(cell) for cell in row):
                continue
            result.total_rows += 1
            line = index + 1
            try:
                result.rows.append(self._parse_row(row, columns, line))
            except (ValueError, ArithmeticError) as e:
                result.errors.append(f"Row {line}: {e}")

        logger.debug(
            "statement_parsed",
            file_format=file_format,
            header_row=header_index + 1,
            columns=sorted(columns),
            rows=len(result.rows),
            errors=len(result.errors),
        )
        return result

    def _parse_row(self, row: list[Any], columns: dict[str, int], line: int) -> ParsedRow:
        def cell(role: str) -> Any:
            index = columns.get(role)
            if index is None or index >= len(row):
                return None
            return row[index]

        raw_date = cell("date")
        if _is_blank(raw_date):
            raise ValueError("Missing date")
        booked = self._to_date(raw_date)
        raw_value_date = cell("value_date")
        value_date = None if _is_blank(raw_value_date) else self._to_date(raw_value_date)

        direction = None
        if not _is_blank(cell("amount")):
            amount = _to_amount(cell("amount"))
        else:
            debit = None if _is_blank(cell("debit")) else _to_amount(cell("debit"))
            credit = None if _is_blank(cell("credit")) else _to_amount(cell("credit"))
            if debit:
                amount, direction = abs(debit), DEBIT
            elif credit:
                amount, direction = abs(credit), CREDIT
            else:
                raise ValueError("Missing amount")

        raw_balance = cell("balance")
        return ParsedRow(
            row_index=line,
            date=booked,
            amount=amount,
            description=_text(cell("description")) or "",
            counterparty=_text(cell("counterparty")),
            reference=_text(cell("reference")),
            balance=None if _is_blank(raw_balance) else _to_amount(raw_balance),
            value_date=value_date,
            currency=(_text(cell("currency")) or "").upper() or None,
            direction=direction,
        )

    def _to_date(self, value: Any) -> date:
        if isinstance(value, (date, datetime)):
            return parse_date(value)
        return parse_date(str(value), dayfirst=self.dayfirst)

    @staticmethod
    def _detect_bank(text: str) -> Optional[str]:
        lowered = text.lower()
        for key in KNOWN_BANKS:
            if re.search(rf"\b{key}\b", lowered):
                return key
        return None

    @staticmethod
    def _detect_iban(text: str) -> Optional[str]:
        for match in _IBAN_CANDIDATE.finditer(text.upper()):
            candidate = normalize_iban(match.group(0))
            if is_valid_iban(candidate):
                return candidate
        return None

"""Tests for bank statement parsing."""

import io
from datetime import date, datetime
from decimal import Decimal

import openpyxl
import pytest

from treasury.domain.errors import UnsupportedFormatError, ValidationError
from treasury.domain.statement_parser import (
    CREDIT,
    DEBIT,
    BankStatementParser,
    detect_columns,
    normalize_header,
)


SPANISH_STATEMENT = (
    "Banco: CaixaBank\n"
    "IBAN: ES91 2100 0418 4502 0005 1332\n"
    "\n"
    "Fecha;Fecha valor;Concepto;Importe;Saldo\n"
    "15/03/2024;16/03/2024;TRANSFERENCIA CLIENTE;1.234,56;2.234,56\n"
    "20/03/2024;20/03/2024;RECIBO LUZ;-49,99;2.184,57\n"
)


def _xlsx(rows) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_normalize_header_strips_accents_and_punctuation():
    assert normalize_header("  Descripción / Concepto ") == "descripcion concepto"
    assert normalize_header(None) == ""


def test_detect_columns_english():
    columns = detect_columns(["Booking Date", "Value Date", "Details", "Amount", "Balance"])
    assert columns == {"date": 0, "value_date": 1, "description": 2, "amount": 3, "balance": 4}


def test_detect_columns_debit_credit():
    columns = detect_columns(["Fecha", "Concepto", "Cargo", "Abono"])
    assert columns["debit"] == 2
    assert columns["credit"] == 3
    assert "amount" not in columns


class TestCSVParsing:
    """Tests for CSV statements."""

    def test_parse_comma_separated(self):
        content = b"Date,Description,Amount,Balance\n2024-03-01,OPENING DEPOSIT,500.00,1500.00\n2024-03-05,RECIBO IBERDROLA,-49.99,1450.01\n"

        result = BankStatementParser().parse("statement.csv", content, "CSV")

        assert result.errors == []
        assert result.total_rows == 2
        assert [r.amount for r in result.rows] == [Decimal("500.00"), Decimal("-49.99")]
        assert result.rows[1].date == date(2024, 3, 5)
        assert result.rows[1].balance == Decimal("1450.01")
        assert result.rows[1].row_index == 3

    def test_parse_spanish_with_preamble(self):
        result = BankStatementParser().parse("movimientos.csv", SPANISH_STATEMENT.encode("utf-8"), "CSV")

        assert result.detected_bank_key == "caixabank"
        assert result.detected_iban == "ES9121000418450200051332"
        assert len(result.rows) == 2
        first = result.rows[0]
        assert first.date == date(2024, 3, 15)
        assert first.value_date == date(2024, 3, 16)
        assert first.amount == Decimal("1234.56")
        assert first.description == "TRANSFERENCIA CLIENTE"
        assert result.rows[1].amount == Decimal("-49.99")

    def test_parse_latin1_file(self):
        content = "Fecha;Concepto;Importe\n01/03/2024;Comisión mantenimiento;-5,00\n".encode("latin-1")

        result = BankStatementParser().parse("santander.csv", content, "CSV")

        assert result.rows[0].description == "Comisión mantenimiento"
        assert result.detected_bank_key == "santander"

    def test_debit_and_credit_columns(self):
        content = b"Date;Description;Debit;Credit\n2024-03-01;SALARY;;2000,00\n2024-03-02;RENT;800,00;\n"

        result = BankStatementParser().parse("statement.csv", content, "CSV")

        assert [(r.amount, r.direction) for r in result.rows] == [
            (Decimal("2000.00"), CREDIT),
            (Decimal("800.00"), DEBIT),
        ]

    def test_bad_rows_are_reported(self):
        content = b"Date,Description,Amount\n2024-03-01,OK,10.00\nnot-a-date,BAD DATE,5.00\n2024-03-03,BAD AMOUNT,abc\n"

        result = BankStatementParser().parse("statement.csv", content, "CSV")

        assert len(result.rows) == 1
        assert result.total_rows == 3
        assert len(result.errors) == 2
        assert result.errors[0].startswith("Row 3:")
        assert result.errors[1].startswith("Row 4:")

    def test_missing_header(self):
        with pytest.raises(ValidationError, match="header"):
            BankStatementParser().parse("statement.csv", b"foo,bar\n1,2\n", "CSV")


class TestXLSXParsing:
    """Tests for XLSX statements."""

    def test_parse_xlsx_with_typed_cells(self):
        content = _xlsx(
            [
                ["Extracto BBVA"],
                ["Date", "Description", "Amount"],
                [datetime(2024, 3, 1), "CLIENT PAYMENT", 1200.5],
                [datetime(2024, 3, 2), "FEE", -3.2],
            ]
        )

        result = BankStatementParser().parse("statement.xlsx", content, "XLSX")

        assert result.detected_bank_key == "bbva"
        assert [r.amount for r in result.rows] == [Decimal("1200.5"), Decimal("-3.2")]
        assert result.rows[0].date == date(2024, 3, 1)

    def test_unreadable_xlsx(self):
        with pytest.raises(ValidationError, match="Could not read XLSX"):
            BankStatementParser().parse("statement.xlsx", b"not a zip file", "XLSX")


def test_xls_needs_dedicated_parser():
    with pytest.raises(UnsupportedFormatError):
        BankStatementParser().parse("statement.xls", b"\xd0\xcf\x11\xe0", "XLS")

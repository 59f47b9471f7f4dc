"""Shared pytest fixtures for treasury tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest

from treasury.config import TreasurySettings
from treasury.database.factories import create_sqlite_store
from treasury.engine import TreasuryEngine


# Valid IBANs (checksums verified against ISO 13616)
IBAN_ES = "ES9121000418450200051332"
IBAN_GB = "GB82WEST12345698765432"
IBAN_DE = "DE89370400440532013000"


@pytest.fixture
def temp_db():
    """Create a temporary ledger store for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create store
    db = create_sqlite_store(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    """Default settings, ignoring any .env file."""
    return TreasurySettings(_env_file=None)


@pytest.fixture
def engine(temp_db, settings):
    """Create a TreasuryEngine over the temporary store."""
    return TreasuryEngine(temp_db, settings=settings)


@pytest.fixture
def account_service(engine):
    """AccountService wired to the engine's event bus."""
    return engine.accounts


@pytest.fixture
def movement_service(engine):
    """MovementService wired to the engine's event bus."""
    return engine.movements


@pytest.fixture
def sample_account(account_service):
    """Account with €1000 opening balance and a €200 minimum."""
    account_id = account_service.create_account(
        name="Operations",
        bank_name="CaixaBank",
        iban=IBAN_ES,
        opening_balance=Decimal("1000"),
        opening_balance_date=date(2024, 1, 1),
        minimum_balance=Decimal("200"),
    )
    return account_service.get_account(account_id)


@pytest.fixture
def reserve_account(account_service):
    """Second account with plenty of funds."""
    account_id = account_service.create_account(
        name="Reserve",
        bank_name="Barclays",
        iban=IBAN_GB,
        opening_balance=Decimal("5000"),
        opening_balance_date=date(2024, 1, 1),
        minimum_balance=Decimal("1000"),
    )
    return account_service.get_account(account_id)


@pytest.fixture
def write_statement(tmp_path):
    """Write statement content to a file and return its path."""

    def _write(content: str | bytes, name: str = "statement.csv") -> Path:
        path = tmp_path / name
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_bytes(content)
        return path

    return _write


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Directory holding sample statement files."""
    return Path(__file__).parent / "fixtures"

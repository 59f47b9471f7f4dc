"""Tests for IBAN normalization and validation."""

import pytest

from treasury.domain.errors import ValidationError
from treasury.utils.iban import is_valid_iban, normalize_iban, validate_iban


def test_normalize_iban_strips_spaces_and_upper_cases():
    assert normalize_iban(" es91 2100 0418 4502 0005 1332 ") == "ES9121000418450200051332"


@pytest.mark.parametrize(
    "iban",
    [
        "ES9121000418450200051332",
        "GB82WEST12345698765432",
        "DE89370400440532013000",
        "es91 2100 0418 4502 0005 1332",
    ],
)
def test_valid_ibans(iban):
    assert is_valid_iban(iban)


@pytest.mark.parametrize(
    "iban",
    [
        "",
        "ES9121000418450200051333",  # checksum off by one
        "ES91",
        "1234567890123456",
        "ES91-2100-0418-4502-0005-1332",
    ],
)
def test_invalid_ibans(iban):
    assert not is_valid_iban(iban)


def test_validate_iban_returns_normalized():
    assert validate_iban("gb82 west 1234 5698 7654 32") == "GB82WEST12345698765432"


def test_validate_iban_raises_validation_error():
    with pytest.raises(ValidationError, match="Invalid IBAN"):
        validate_iban("ES0000000000000000000000")

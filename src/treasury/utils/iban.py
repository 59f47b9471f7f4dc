"""IBAN normalization and validation."""

import re

from treasury.domain.errors import ValidationError


_IBAN_PATTERN = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]{11,30}$")


def normalize_iban(iban: str) -> str:
    """Strip spaces and upper-case an IBAN."""
    return re.sub(r"\s+", "", iban or "").upper()


def is_valid_iban(iban: str) -> bool:
    """Check the IBAN shape and its mod-97 checksum."""
    iban = normalize_iban(iban)
    if not _IBAN_PATTERN.match(iban):
        return False
    rearranged = iban[4:] + iban[:4]
    digits = "".join(str(int(ch, 36)) for ch in rearranged)
    return int(digits) % 97 == 1


def validate_iban(iban: str) -> str:
    """Return the normalized IBAN.

    Raises:
        ValidationError: If the IBAN is malformed or its checksum fails
    """
    normalized = normalize_iban(iban)
    if not is_valid_iban(normalized):
        raise ValidationError(f"Invalid IBAN '{iban}'")
    return normalized

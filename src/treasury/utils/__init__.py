"""Utility functions for the treasury engine."""

from treasury.utils.date_parser import parse_date
from treasury.utils.amount_parser import parse_amount
from treasury.utils.iban import normalize_iban, validate_iban

__all__ = ["parse_date", "parse_amount", "normalize_iban", "validate_iban"]

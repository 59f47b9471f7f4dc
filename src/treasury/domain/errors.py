"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for callers that only handle ValueError.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class InvalidAccountError(DomainError):
    """Account is missing, inactive or deleted."""


class DuplicateImportError(ConflictError):
    """A statement with the same content hash was already imported."""


class UnsupportedFormatError(ValidationError):
    """Statement file extension is not CSV, XLS or XLSX."""


class EmptyImportError(ValidationError):
    """Statement parser produced no usable rows."""


class AlreadyReconciledError(ConflictError):
    """Forecast event or movement is already part of a reconciliation."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_inactive(account_id: int) -> str:
    """Return message for an account that cannot receive movements."""
    return f"Account {account_id} is inactive"


def movement_not_found(movement_id: int) -> str:
    """Return message for missing movement."""
    return f"Movement {movement_id} not found"


def event_not_found(event_id: int) -> str:
    """Return message for missing forecast event."""
    return f"Forecast event {event_id} not found"


def recommendation_not_found(recommendation_id: str) -> str:
    """Return message for missing recommendation."""
    return f"Recommendation '{recommendation_id}' not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing automation rule."""
    return f"Automation rule {rule_id} not found"


def duplicate_iban(iban: str) -> str:
    """Return message for an IBAN already registered to another account."""
    return f"An account with IBAN '{iban}' already exists"


def duplicate_import(filename: str, batch_id: str) -> str:
    """Return message when a byte-identical statement was imported before."""
    return f"File '{filename}' was already imported (batch {batch_id})"


def unsupported_format(filename: str) -> str:
    """Return message for an unknown statement extension."""
    return f"Unsupported file format for '{filename}'. Use CSV, XLS or XLSX"


def event_already_executed(event_id: int) -> str:
    """Return message for a forecast event that is already reconciled."""
    return f"Forecast event {event_id} is already executed"


def movement_already_reconciled(movement_id: int) -> str:
    """Return message for a movement that is already reconciled."""
    return f"Movement {movement_id} is already reconciled"


def account_delete_blocked(account_id: int, movement_count: int) -> str:
    """Return message when an account still has movements."""
    return (
        f"Cannot delete account {account_id}: it has {movement_count} "
        f"movement{'s' if movement_count != 1 else ''}. "
        "Deactivate it or use cascading delete instead."
    )


def amount_must_be_positive(amount: Decimal) -> str:
    """Return message for a non-positive forecast amount."""
    return f"Amount must be greater than 0, got {amount}"

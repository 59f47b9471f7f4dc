"""Utility for resolving account names and IBANs to IDs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from treasury.domain.errors import NotFoundError
from treasury.utils.iban import normalize_iban

if TYPE_CHECKING:
    from treasury.domain.account import AccountService


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve account ID, IBAN or name to account ID.

    Args:
        account_service: AccountService instance
        account: Account ID (int or string representation of int), IBAN or name

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found
    """
    # If it's already an integer, use it as ID
    if isinstance(account, int):
        if account_service.get_account(account) is None:
            raise NotFoundError(f"Account ID {account} not found")
        return account

    # Try to parse as integer (handles string IDs like "1")
    try:
        account_id = int(account)
    except (ValueError, TypeError):
        account_id = None

    if account_id is not None:
        if account_service.get_account(account_id) is None:
            raise NotFoundError(f"Account ID {account_id} not found")
        return account_id

    by_iban = account_service.get_account_by_iban(normalize_iban(account))
    if by_iban is not None:
        return by_iban.id

    # Try to find by name
    for acc in account_service.list_accounts():
        if acc.name == account:
            return acc.id

    raise NotFoundError(f"Account '{account}' not found")

"""Learned categorization rules for movements."""

import re
from collections import Counter
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from treasury.database.base import LedgerStore
from treasury.domain import errors
from treasury.domain.entities import AutomationRule, Movement

logger = structlog.get_logger(__name__)

_DATE = re.compile(r"\b\d{1,4}[/.-]\d{1,2}[/.-]\d{1,4}\b")
_AMOUNT = re.compile(r"[-+]?\d+(?:[.,]\d{3})*[.,]\d{2}\b")
_LONG_NUMBER = re.compile(r"\b\d{4,}\b")
_LONG_CODE = re.compile(r"\b(?=[a-z]*\d)[a-z0-9]{10,}\b")
_NON_WORD = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")


def normalize_counterparty(counterparty: Optional[str]) -> str:
    """Lower-case, drop punctuation and collapse whitespace."""
    text = _NON_WORD.sub(" ", (counterparty or "").lower())
    return _SPACES.sub(" ", text).strip()


def description_pattern(description: Optional[str]) -> str:
    """Description with the parts that vary between occurrences removed.

    Dates, amounts, long numbers and long alphanumeric codes are stripped so
    that "RECIBO LUZ 03/2024 REF 123456" and "RECIBO LUZ 04/2024 REF 654321"
    share a pattern.
    """
    text = (description or "").lower()
    for pattern in (_DATE, _AMOUNT, _LONG_NUMBER, _LONG_CODE):
        text = pattern.sub(" ", text)
    text = _NON_WORD.sub(" ", text)
    text = re.sub(r"\b\d+\b", " ", text)
    return _SPACES.sub(" ", text).strip()


def amount_sign(amount: Decimal) -> str:
    return "debit" if amount < 0 else "credit"


def build_learn_key(counterparty: Optional[str], description: Optional[str], amount: Decimal) -> str:
    """Key that identifies recurring movements of the same kind."""
    return "|".join((normalize_counterparty(counterparty), description_pattern(description), amount_sign(amount)))


class RuleService:
    """Learns categories from user choices and applies them to new movements."""

    def __init__(self, db: LedgerStore):
        """Initialize rule service.

        Args:
            db: Ledger store instance
        """
        self.db = db

    def learn_from_movement(self, movement_id: int, category: str) -> AutomationRule:
        """Categorize a movement and remember the choice for similar ones.

        Args:
            movement_id: Movement ID
            category: Category label

        Returns:
            The created or updated rule

        Raises:
            NotFoundError: If movement not found
            ValidationError: If category is blank
        """
        category = (category or "").strip()
        if not category:
            raise errors.ValidationError("Category is required")

        movement = self.db.get_movement(movement_id)
        if movement is None:
            raise errors.NotFoundError(errors.movement_not_found(movement_id))

        self.db.set_movement_category(movement_id, category)
        rule_id = self.db.upsert_rule(
            account_id=movement.account_id,
            learn_key=build_learn_key(movement.counterparty, movement.description, movement.amount),
            counterparty_pattern=normalize_counterparty(movement.counterparty),
            description_pattern=description_pattern(movement.description),
            amount_sign=amount_sign(movement.amount),
            category=category,
        )
        logger.info("rule_learned", rule_id=rule_id, movement_id=movement_id, category=category)
        return self.db.get_rule(rule_id)

    def apply_rules(self, account_id: int, movements: Iterable[Movement]) -> int:
        """Categorize uncategorized movements that match a rule of the account.

        Returns:
            Number of movements categorized
        """
        rules = {rule.learn_key: rule for rule in self.db.list_rules(account_id=account_id)}
        if not rules:
            return 0

        applied: Counter[int] = Counter()
        for movement in movements:
            if movement.category:
                continue
            rule = rules.get(build_learn_key(movement.counterparty, movement.description, movement.amount))
            if rule is None:
                continue
            self.db.set_movement_category(movement.id, rule.category)
            applied[rule.id] += 1

        for rule_id, count in applied.items():
            self.db.record_rule_applied(rule_id, count)

        total = sum(applied.values())
        if total:
            logger.info("rules_applied", account_id=account_id, categorized=total)
        return total

    def list_rules(self, account_id: Optional[int] = None) -> list[AutomationRule]:
        """List automation rules, optionally for one account."""
        return self.db.list_rules(account_id=account_id)

    def delete_rule(self, rule_id: int) -> None:
        """Delete an automation rule.

        Raises:
            NotFoundError: If rule not found
        """
        if self.db.get_rule(rule_id) is None:
            raise errors.NotFoundError(errors.rule_not_found(rule_id))
        self.db.delete_rule(rule_id)

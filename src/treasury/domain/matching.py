"""Matching of forecast events against bank movements.

Each (predicted event, unreconciled movement) pair must pass an amount gate,
a date gate and, when the event has an account, an account gate. Pairs that
pass are scored::

    0.5                               both gates passed
    + 0.3                             amount difference < 0.01
    + 0.2                             booked on the predicted day
    + min(0.3, 0.1 * shared words)    words longer than 3 characters

Pairs scoring at or above the review threshold are candidates. Candidates at
or above the auto-accept threshold are reconciled automatically when neither
side appears in another auto-level candidate.
"""

import re
from collections import Counter
from contextlib import nullcontext
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

import structlog

from treasury.database.base import LedgerStore
from treasury.domain import errors
from treasury.domain.entities import (
    EventStatus,
    ForecastEvent,
    Movement,
    ReconciliationState,
)
from treasury.domain.events import DomainEvent, DomainEventBus, EventKind

logger = structlog.get_logger(__name__)

BASE_SCORE = Decimal("0.5")
EXACT_AMOUNT_BONUS = Decimal("0.3")
SAME_DAY_BONUS = Decimal("0.2")
TOKEN_BONUS = Decimal("0.1")
MAX_TOKEN_BONUS = Decimal("0.3")
EXACT_AMOUNT_LIMIT = Decimal("0.01")
MIN_TOKEN_LENGTH = 4

_WORD = re.compile(r"\w+")


def tokenize(text: Optional[str]) -> set[str]:
    """Lower-cased words of at least four characters."""
    return {word for word in _WORD.findall((text or "").lower()) if len(word) >= MIN_TOKEN_LENGTH}


@dataclass(frozen=True)
class MatchCandidate:
    """A scored pairing of a forecast event with a movement."""

    event: ForecastEvent
    movement: Movement
    score: Decimal
    reason: str
    amount_difference: Decimal
    day_difference: int


@dataclass
class AutoReconciliationResult:
    """Outcome of one automatic reconciliation pass."""

    reconciled: list[MatchCandidate] = field(default_factory=list)
    pending_review: list[MatchCandidate] = field(default_factory=list)


class MatchingEngine:
    """Proposes and commits reconciliation links."""

    def __init__(
        self,
        db: LedgerStore,
        bus: Optional[DomainEventBus] = None,
        review_threshold: Decimal = Decimal("0.6"),
        auto_accept_threshold: Decimal = Decimal("0.8"),
        amount_tolerance: Decimal = Decimal("0.50"),
        date_window_days: int = 3,
    ):
        """Initialize matching engine.

        Args:
            db: Ledger store instance
            bus: Event bus notified when a movement is reconciled (optional)
            review_threshold: Minimum score for a candidate
            auto_accept_threshold: Minimum score for automatic reconciliation
            amount_tolerance: Amount gate
            date_window_days: Date gate in days
        """
        if auto_accept_threshold < review_threshold:
            raise errors.ValidationError("Auto-accept threshold must not be lower than the review threshold")
        self.db = db
        self.bus = bus
        self.review_threshold = Decimal(review_threshold)
        self.auto_accept_threshold = Decimal(auto_accept_threshold)
        self.amount_tolerance = Decimal(amount_tolerance)
        self.date_window_days = date_window_days

    def score_pair(self, event: ForecastEvent, movement: Movement) -> Optional[MatchCandidate]:
        """Score one pair. Returns None if a gate rejects it."""
        amount_difference = abs(abs(movement.amount) - event.amount)
        if amount_difference > self.amount_tolerance:
            return None

        day_difference = abs((event.predicted_date - movement.date).days)
        if day_difference > self.date_window_days:
            return None

        if event.account_id is not None and event.account_id != movement.account_id:
            return None

        score = BASE_SCORE
        reasons = [f"amount within {amount_difference}", f"{day_difference} day(s) apart"]
        if amount_difference < EXACT_AMOUNT_LIMIT:
            score += EXACT_AMOUNT_BONUS
            reasons[0] = "exact amount"
        if day_difference < 1:
            score += SAME_DAY_BONUS
            reasons[1] = "same day"

        shared = tokenize(event.description) & tokenize(f"{movement.counterparty or ''} {movement.description}")
        if shared:
            score += min(MAX_TOKEN_BONUS, TOKEN_BONUS * len(shared))
            reasons.append(f"shared words: {', '.join(sorted(shared))}")

        return MatchCandidate(
            event=event,
            movement=movement,
            score=score,
            reason="; ".join(reasons),
            amount_difference=amount_difference,
            day_difference=day_difference,
        )

    def find_candidate_matches(self) -> list[MatchCandidate]:
        """Scored candidates at or above the review threshold, best first.

        Ties keep event order, then movement order. Nothing is written.
        """
        events = self.db.list_forecast_events(status=EventStatus.PREDICTED.value)
        movements = self.db.list_movements(reconciliation_state=ReconciliationState.UNRECONCILED.value)

        candidates = []
        for event in events:
            for movement in movements:
                candidate = self.score_pair(event, movement)
                if candidate is not None and candidate.score >= self.review_threshold:
                    candidates.append(candidate)

        # sorted() is stable
        return sorted(candidates, key=lambda c: c.score, reverse=True)

    def reconcile(self, event_id: int, movement_id: int) -> ForecastEvent:
        """Link a forecast event to the movement that settled it.

        Returns:
            The executed forecast event

        Raises:
            NotFoundError: If either entity does not exist
            AlreadyReconciledError: If the event is executed or the movement reconciled
        """
        event = self.db.get_forecast_event(event_id)
        if event is None:
            raise errors.NotFoundError(errors.event_not_found(event_id))
        movement = self.db.get_movement(movement_id)
        if movement is None:
            raise errors.NotFoundError(errors.movement_not_found(movement_id))

        if event.status == EventStatus.EXECUTED:
            raise errors.AlreadyReconciledError(errors.event_already_executed(event_id))
        if movement.reconciliation_state == ReconciliationState.RECONCILED:
            raise errors.AlreadyReconciledError(errors.movement_already_reconciled(movement_id))

        self.db.reconcile(
            event_id=event_id,
            movement_id=movement_id,
            actual_date=movement.date,
            actual_amount=abs(movement.amount),
            document_id=event.source_id,
        )
        logger.info("movement_reconciled", event_id=event_id, movement_id=movement_id)

        if self.bus is not None:
            self.bus.publish(
                DomainEvent(
                    kind=EventKind.MOVEMENT_UPDATED,
                    entity=self.db.get_movement(movement_id),
                    previous=movement,
                )
            )
        return self.db.get_forecast_event(event_id)

    def auto_reconcile(self) -> AutoReconciliationResult:
        """Reconcile unambiguous candidates at or above the auto-accept threshold."""
        candidates = self.find_candidate_matches()
        auto_level = [c for c in candidates if c.score >= self.auto_accept_threshold]
        event_hits = Counter(c.event.id for c in auto_level)
        movement_hits = Counter(c.movement.id for c in auto_level)

        result = AutoReconciliationResult()
        with self.bus.batch() if self.bus is not None else nullcontext():
            for candidate in auto_level:
                if event_hits[candidate.event.id] == 1 and movement_hits[candidate.movement.id] == 1:
                    self.reconcile(candidate.event.id, candidate.movement.id)
                    result.reconciled.append(candidate)

        # Candidates sharing an entity with a committed link are no longer viable
        linked_events = {c.event.id for c in result.reconciled}
        linked_movements = {c.movement.id for c in result.reconciled}
        result.pending_review = [
            c for c in candidates if c.event.id not in linked_events and c.movement.id not in linked_movements
        ]
        logger.info(
            "auto_reconciliation_completed",
            candidates=len(candidates),
            reconciled=len(result.reconciled),
            pending_review=len(result.pending_review),
        )
        return result

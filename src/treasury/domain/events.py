"""Domain event bus.

Mutating services publish ``DomainEvent`` instances; the bus runs the
recalculation cascade first and then notifies every listener registered for
the event kind. The cascade is passed to the constructor and cannot be
unsubscribed.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from itertools import count
from typing import Any, Callable, Iterator, Optional

import structlog

from treasury.domain.entities import Account, Movement

logger = structlog.get_logger(__name__)


class EventKind(str, Enum):
    MOVEMENT_CREATED = "movement_created"
    MOVEMENT_UPDATED = "movement_updated"
    MOVEMENT_DELETED = "movement_deleted"
    ACCOUNT_CHANGED = "account_changed"
    ACCOUNT_DELETED = "account_deleted"


@dataclass(frozen=True)
class DomainEvent:
    """A mutation of a movement or account.

    ``entity`` is the affected entity after the change (or the removed one for
    deletions); ``previous`` is the version before an update.
    """

    kind: EventKind
    entity: Any
    previous: Any = None

    @property
    def account_ids(self) -> frozenset[int]:
        """Accounts whose derived state depends on this event."""
        ids = set()
        for item in (self.entity, self.previous):
            if isinstance(item, Movement):
                ids.add(item.account_id)
            elif isinstance(item, Account):
                ids.add(item.id)
        return frozenset(ids)


Handler = Callable[[DomainEvent], None]
Cascade = Callable[[frozenset[int]], None]


@dataclass(frozen=True)
class Subscription:
    """Handle returned by ``subscribe``; pass it to ``unsubscribe``."""

    id: int
    kind: Optional[EventKind]
    handler: Handler


class DomainEventBus:
    """Synchronous publish/subscribe registry keyed by event kind."""

    def __init__(self, cascade: Cascade):
        """Initialize the bus.

        Args:
            cascade: Callable receiving the affected account IDs. It runs
                before any listener and its errors propagate to the publisher.
        """
        self._cascade = cascade
        self._subscriptions: dict[Optional[EventKind], list[Subscription]] = {}
        self._ids = count(1)
        self._queue: list[DomainEvent] = []
        self._batch_depth = 0

    def subscribe(self, kind: Optional[EventKind], handler: Handler) -> Subscription:
        """Register a listener for one event kind, or for all kinds when kind is None."""
        subscription = Subscription(id=next(self._ids), kind=kind, handler=handler)
        self._subscriptions.setdefault(kind, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a listener. Returns False if it was not registered."""
        listeners = self._subscriptions.get(subscription.kind, [])
        if subscription in listeners:
            listeners.remove(subscription)
            return True
        return False

    def listener_count(self, kind: Optional[EventKind] = None) -> int:
        """Number of removable listeners for a kind (None counts wildcard listeners)."""
        return len(self._subscriptions.get(kind, []))

    def publish(self, event: DomainEvent) -> None:
        """Deliver an event, or queue it while a batch is open."""
        if self._batch_depth > 0:
            self._queue.append(event)
            return
        self._dispatch([event])

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Queue events published inside the block and deliver them on exit.

        The cascade runs once for the union of affected accounts. Events
        queued before an exception are still delivered.
        """
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._queue:
                events, self._queue = self._queue, []
                self._dispatch(events)

    def _dispatch(self, events: list[DomainEvent]) -> None:
        account_ids = frozenset().union(*(event.account_ids for event in events))
        self._cascade(account_ids)

        for event in events:
            listeners = [*self._subscriptions.get(event.kind, []), *self._subscriptions.get(None, [])]
            for subscription in listeners:
                try:
                    subscription.handler(event)
                except Exception:
                    logger.exception(
                        "event_listener_failed",
                        event_kind=event.kind.value,
                        subscription_id=subscription.id,
                    )

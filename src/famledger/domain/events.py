"""Domain events and a synchronous in-process event bus.

Events are published inside the unit of work of the operation that raised
them, so handlers run in the same transaction and roll back with it.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Callable
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoiceSettled:
    """A card invoice moved from open to paid."""

    invoice_id: int
    card_id: int
    month: int
    year: int
    paying_account_id: int
    paid_date: date
    paid_amount: Decimal
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


Handler = Callable[[object], None]


class EventBus:
    """Dispatch events to the handlers subscribed to their type."""

    def __init__(self):
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        """Register handler for events of event_type."""
        self._handlers[event_type].append(handler)

    def publish(self, event: object) -> None:
        """Call every handler subscribed to the event's type, in order.

        Handler exceptions propagate to the publisher.
        """
        handlers = self._handlers.get(type(event), [])
        logger.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            handler(event)

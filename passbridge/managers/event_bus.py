"""
In-process event bus for host platform hooks.
"""
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]


class HookEvent(str, Enum):
    """Events raised by the host platform or by this service."""
    CHECKOUT_COMPLETED = "checkout_completed"                # (order_id, data)
    ORDER_COMPLETED = "order_status_completed"               # (order_id,)
    THANKYOU_VIEWED = "thankyou_viewed"                      # (order_id,)
    ADD_TO_CART_REDIRECT = "add_to_cart_redirect"            # (order_id,)
    DELAYED_PROCESSING = "delayed_processing"                # (order_id,)
    TICKET_DATA_EXTRACTED = "ticket_data_extracted"          # (ticket_data, order_id)


class EventBus:
    """Dispatches events to async handlers in registration order."""

    def __init__(self):
        self._handlers: Dict[HookEvent, List[Handler]] = defaultdict(list)

    def subscribe(self, event: HookEvent, handler: Handler) -> None:
        if handler not in self._handlers[event]:
            self._handlers[event].append(handler)

    def unsubscribe(self, event: HookEvent, handler: Handler) -> None:
        if handler in self._handlers[event]:
            self._handlers[event].remove(handler)

    def handlers(self, event: HookEvent) -> List[Handler]:
        return list(self._handlers[event])

    async def publish(self, event: HookEvent, *args: Any) -> List[Any]:
        """
        Call every handler of ``event`` with ``args``.

        A failing handler is logged and does not stop the others.
        """
        results = []
        for handler in self.handlers(event):
            try:
                results.append(await handler(*args))
            except Exception:
                logger.exception(f"Handler {getattr(handler, '__qualname__', handler)} failed for {event.value}")
        return results

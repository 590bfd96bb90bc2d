"""
Message event dispatcher.

Delivers sent confirmations and received messages to registered handlers
in a thread-safe manner.
"""

import logging
import threading
from typing import Callable, List

from ..types import EventKind, MessageEvent

logger = logging.getLogger(__name__)

# Type alias for message handlers
MessageHandler = Callable[[MessageEvent], None]


class EventDispatcher:
    """
    Dispatches message events to handlers.

    Features:
    - Zero or more handlers
    - Thread-safe registration
    - Error handling for misbehaving handlers
    """

    def __init__(self) -> None:
        """Initialize event dispatcher."""
        self._handlers: List[MessageHandler] = []

        # Thread safety
        self._lock = threading.Lock()

        logger.info("Initialized event dispatcher")

    def add_handler(self, handler: MessageHandler) -> None:
        """
        Register a handler for message events.

        Args:
            handler: Function to call with each event.
                     Signature: handler(event: MessageEvent) -> None

        Example:

        .. code-block:: python

            dispatcher.add_handler(lambda event: print(event.kind, event.data))
        """
        with self._lock:
            self._handlers.append(handler)
            logger.info(f"Registered message handler: {handler!r}")

    def remove_handler(self, handler: MessageHandler) -> bool:
        """
        Unregister a handler.

        Args:
            handler: Previously registered handler

        Returns:
            True if handler was removed, False if not found
        """
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)
                logger.info(f"Unregistered message handler: {handler!r}")
                return True
            return False

    def set_handler(self, handler: MessageHandler) -> None:
        """Replace all handlers with a single one."""
        with self._lock:
            self._handlers = [handler]
            logger.info(f"Set message handler: {handler!r}")

    def clear_handlers(self) -> None:
        """Clear all registered handlers."""
        with self._lock:
            count = len(self._handlers)
            self._handlers.clear()
            logger.info(f"Cleared {count} message handlers")

    def dispatch(self, kind: EventKind, data: bytes) -> MessageEvent:
        """
        Build an event and deliver it to every handler.

        Handlers run on the calling thread. A handler that raises is logged
        and does not stop delivery to the others.

        Args:
            kind: Event kind
            data: Message bytes

        Returns:
            The dispatched event
        """
        event = MessageEvent(kind=kind, data=bytes(data))

        # Snapshot handlers (outside lock so a slow handler cannot block registration)
        with self._lock:
            handlers = list(self._handlers)

        logger.debug(f"Dispatching {kind.name} event ({len(data)} bytes) to {len(handlers)} handlers")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Message handler {handler!r} failed: {e}", exc_info=True)

        return event

    def handler_count(self) -> int:
        """
        Get number of registered handlers.

        Returns:
            Number of handlers
        """
        with self._lock:
            return len(self._handlers)

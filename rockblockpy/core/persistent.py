"""
Persistent message sender.

Keeps resending queued binary messages until the modem reports success.
"""

import logging
import queue
import threading
from typing import Callable, Optional

from .events import EventDispatcher
from ..types import EventKind, RetryPolicy
from ..exceptions import RockBLOCKError

logger = logging.getLogger(__name__)

# Type alias for the blocking send used by the worker
SendFunction = Callable[[bytes], object]


class PersistentSender:
    """
    Retry worker for guaranteed delivery.

    Payloads are taken from a bounded FIFO queue one at a time and sent
    until a send succeeds, after which a CONFIRM_SENT event is dispatched.
    Send errors are logged and never reach the enqueueing caller.
    """

    def __init__(
        self,
        send: SendFunction,
        events: EventDispatcher,
        queue_size: int = 1024,
        retry_policy: Optional[RetryPolicy] = None
    ) -> None:
        """
        Initialize persistent sender.

        Args:
            send: Blocking send that raises on failure (e.g. send_binary)
            events: Dispatcher for CONFIRM_SENT events
            queue_size: Maximum number of pending payloads
            retry_policy: Delay and attempt cap between retries
        """
        self._send = send
        self._events = events
        self.retry_policy = retry_policy or RetryPolicy()

        self._queue: "queue.Queue[bytes]" = queue.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        logger.info(f"Initialized PersistentSender (queue_size={queue_size})")

    def start(self) -> None:
        """Start the sender thread."""
        if self._thread and self._thread.is_alive():
            logger.warning("PersistentSender already started")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sender_loop,
            daemon=True,
            name="PersistentSenderThread"
        )
        self._thread.start()
        logger.info("Started persistent sender thread")

    def stop(self) -> None:
        """
        Stop the sender thread.

        A send in progress finishes (or times out) first; queued payloads
        stay queued.
        """
        if not self._thread:
            return

        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
            if self._thread.is_alive():
                logger.warning("Persistent sender thread did not terminate in time")
        self._thread = None
        logger.info("Stopped persistent sender thread")

    def enqueue(self, payload: bytes, timeout: Optional[float] = None) -> None:
        """
        Queue a payload for delivery.

        Returns immediately while there is room; blocks when the queue is full.

        Args:
            payload: Message bytes
            timeout: Give up waiting for room after this many seconds

        Raises:
            queue.Full: If timeout expires with the queue still full
        """
        self._queue.put(bytes(payload), timeout=timeout)
        logger.debug(f"Queued {len(payload)} bytes for persistent delivery ({self.pending} pending)")

    @property
    def pending(self) -> int:
        """Number of payloads waiting, including one being sent."""
        return self._queue.unfinished_tasks

    def join(self) -> None:
        """Block until every queued payload has been handled."""
        self._queue.join()

    def _sender_loop(self) -> None:
        logger.debug("Persistent sender thread started")

        while not self._stop_event.is_set():
            try:
                payload = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue

            try:
                self._deliver(payload)
            finally:
                self._queue.task_done()

        logger.debug("Persistent sender thread stopped")

    def _deliver(self, payload: bytes) -> None:
        """Send one payload until it goes through or the policy gives up."""
        attempts = 0

        while not self._stop_event.is_set():
            attempts += 1
            try:
                self._send(payload)
            except ValueError as e:
                logger.error(f"Dropping invalid message: {e}")
                return
            except Exception as e:
                if isinstance(e, RockBLOCKError):
                    logger.warning(f"Send attempt {attempts} failed: {e}")
                else:
                    logger.exception(f"Unexpected error on send attempt {attempts}")

                if self.retry_policy.exhausted(attempts):
                    logger.error(f"Dropping {len(payload)} byte message after {attempts} attempts")
                    return

                delay = self.retry_policy.delay_for(attempts)
                if delay and self._stop_event.wait(delay):
                    break
                continue

            logger.info(f"Persistent message sent after {attempts} attempt(s)")
            self._events.dispatch(EventKind.CONFIRM_SENT, payload)
            return

        logger.warning(f"Stopped with {len(payload)} byte message undelivered")

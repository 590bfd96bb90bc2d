"""
AT command protocol handler.

Splits the modem byte stream into lines and lets session dialogs wait for
the response lines they expect.
"""

import logging
import queue
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Iterator, Optional, Union

from ..exceptions import ATTimeoutError, ATCommandError
from ..types import MatchMode

logger = logging.getLogger(__name__)

# Protocol-level bound on any single wait (satellite sessions are slow)
DEFAULT_PROTOCOL_TIMEOUT = 300.0

LinePredicate = Callable[[bytes], bool]


@dataclass(frozen=True)
class ResponseLine:
    """A trimmed line from the modem plus whatever the reader parsed from it."""
    raw: bytes
    text: str
    parsed: Any = None


class CaptureState(Enum):
    """Whether a download capture window is open."""
    IDLE = "idle"
    CAPTURING = "capturing"


class LineSplitter:
    """
    Incremental splitter for CR-terminated modem output.

    Segments are trimmed of surrounding CR/LF; empty segments are dropped.
    """

    def __init__(self, delimiter: bytes = b"\r") -> None:
        self.delimiter = delimiter
        self._buffer = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        """
        Add received bytes.

        Returns:
            Lines completed by this data, in order
        """
        self._buffer.extend(data)
        lines = []

        while True:
            idx = self._buffer.find(self.delimiter)
            if idx < 0:
                break
            segment = bytes(self._buffer[:idx])
            del self._buffer[:idx + len(self.delimiter)]

            line = segment.strip(b"\r\n")
            if line:
                lines.append(line)

        return lines

    def flush(self) -> Optional[bytes]:
        """
        Return the unterminated residue at end of stream.

        Returns:
            Final line, or None if nothing non-empty is left
        """
        tail = bytes(self._buffer).strip(b"\r\n")
        self._buffer.clear()
        return tail or None


class ATProtocol:
    """
    AT command protocol handler.

    Owns the response channel fed by the reader thread, the dialog token
    that keeps session dialogs from overlapping, and the download capture
    window.
    """

    def __init__(
        self,
        write: Callable[[bytes], None],
        default_timeout: float = DEFAULT_PROTOCOL_TIMEOUT,
        history_size: int = 256,
        queue_size: int = 64
    ) -> None:
        """
        Initialize AT protocol handler.

        Args:
            write: Hands bytes to the command writer
            default_timeout: Default bound for each wait in seconds
            history_size: Number of recent lines kept for diagnostics
            queue_size: Capacity of the response channel
        """
        self._write = write
        self.default_timeout = default_timeout

        # One session dialog at a time
        self._dialog_lock = threading.Lock()

        # Response channel: reader thread -> waiting dialog
        self._responses: "queue.Queue[ResponseLine]" = queue.Queue(maxsize=queue_size)

        self.history: Deque[bytes] = deque(maxlen=history_size)

        self._capture_state = CaptureState.IDLE
        self._capture: Optional[list[bytes]] = None

        self._last_command: Optional[str] = None

        logger.info("Initialized AT protocol handler")

    @contextmanager
    def dialog(self) -> Iterator[None]:
        """
        Hold the session-dialog token for the duration of the block.

        Example:

        .. code-block:: python

            with protocol.dialog():
                protocol.send("AT+CSQ")
                protocol.wait_for("+CSQ:", MatchMode.PREFIX)
        """
        with self._dialog_lock:
            logger.debug("Dialog started")
            try:
                yield
            finally:
                logger.debug("Dialog finished")

    def in_dialog(self) -> bool:
        """Check if a dialog currently holds the token."""
        return self._dialog_lock.locked()

    @contextmanager
    def capture(self) -> Iterator[list[bytes]]:
        """
        Open a capture window.

        Every line a wait observes while the window is open is appended to
        the yielded list. The window closes when the block exits.
        """
        lines: list[bytes] = []
        self._capture = lines
        self._capture_state = CaptureState.CAPTURING
        logger.debug("Capture window opened")
        try:
            yield lines
        finally:
            self._capture_state = CaptureState.IDLE
            self._capture = None
            logger.debug(f"Capture window closed ({len(lines)} lines)")

    @property
    def capture_state(self) -> CaptureState:
        return self._capture_state

    def send(self, cmd: str) -> None:
        """
        Send an AT command line.

        Args:
            cmd: Command without terminator (e.g., "AT+SBDI")
        """
        self._last_command = cmd
        logger.debug(f"Sending AT command: {cmd}")
        self._write(cmd.encode("utf-8") + b"\r")

    def send_raw(self, data: bytes) -> None:
        """Send raw bytes without a line terminator."""
        logger.debug(f"Sending {len(data)} raw bytes")
        self._write(bytes(data))

    def publish(self, line: ResponseLine, stop_event: threading.Event) -> bool:
        """
        Hand a line to waiting dialogs (called by the reader thread).

        Blocks while the channel is full.

        Returns:
            False if stopped before the line could be delivered
        """
        while not stop_event.is_set():
            try:
                self._responses.put(line, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def wait_for(
        self,
        target: Union[str, bytes],
        mode: MatchMode = MatchMode.EXACT,
        timeout: Optional[float] = None,
        fail_on_error: bool = True
    ) -> ResponseLine:
        """
        Block until a line matching ``target`` arrives.

        Args:
            target: Text to compare against
            mode: Exact, prefix or suffix comparison
            timeout: Wait bound in seconds (uses default if None)
            fail_on_error: Raise on a bare ERROR line

        Returns:
            The matching line

        Raises:
            ATTimeoutError: If no matching line arrives in time
            ATCommandError: If the modem answers ERROR
        """
        if isinstance(target, str):
            target = target.encode("utf-8")

        if mode is MatchMode.EXACT:
            predicate: LinePredicate = lambda raw: raw == target
        elif mode is MatchMode.PREFIX:
            predicate = lambda raw: raw.startswith(target)
        else:
            predicate = lambda raw: raw.endswith(target)

        return self.wait_until(
            predicate,
            f"{mode.value} {target!r}",
            timeout=timeout,
            fail_on_error=fail_on_error
        )

    def wait_until(
        self,
        predicate: LinePredicate,
        description: str,
        timeout: Optional[float] = None,
        fail_on_error: bool = True
    ) -> ResponseLine:
        """
        Block until a line satisfying ``predicate`` arrives.

        Every line seen, matching or not, is recorded in the history and in
        an open capture window.
        """
        timeout_val = timeout if timeout is not None else self.default_timeout
        end_time = time.monotonic() + timeout_val

        while True:
            remaining = end_time - time.monotonic()
            if remaining <= 0:
                logger.error(f"Timed out waiting for {description}")
                raise ATTimeoutError(
                    f"Timed out waiting for {description}",
                    command=self._last_command
                )

            try:
                line = self._responses.get(timeout=remaining)
            except queue.Empty:
                continue

            self._record(line.raw)
            logger.debug(f"Received: {line.raw!r}")

            if predicate(line.raw):
                return line

            if fail_on_error and line.raw == b"ERROR":
                logger.error(f"AT command returned ERROR: {self._last_command}")
                raise ATCommandError(
                    f"AT command {self._last_command} returned ERROR",
                    command=self._last_command,
                    response=[line.text]
                )

    def _record(self, raw: bytes) -> None:
        self.history.append(raw)
        if self._capture_state is CaptureState.CAPTURING and self._capture is not None:
            self._capture.append(raw)

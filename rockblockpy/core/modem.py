"""
Core modem class coordinating transport, protocol, and message events.

This is the foundation that feature managers build upon.
"""

import logging
import queue
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from .transport import Transport
from .protocol import ATProtocol, LineSplitter, ResponseLine, DEFAULT_PROTOCOL_TIMEOUT
from .events import EventDispatcher, MessageHandler
from ..parsers.base import ResponseParser
from ..parsers.status import SessionStatusParser, SignalQualityParser, SystemTimeParser
from ..types import SessionStatus
from ..exceptions import DeviceDisconnectedError, RockBLOCKError, TransportError

logger = logging.getLogger(__name__)


class ModemCore:
    """
    Core modem functionality.

    Coordinates:
    - Transport layer (serial communication)
    - Reader thread (splits, parses and publishes modem lines)
    - Writer thread (serializes all outbound bytes)
    - Protocol layer (dialog token, waits, capture window)
    - Message events (sent confirmations, received messages)

    The last parsed session status, signal quality and system time are kept
    here and are only written by the reader thread.
    """

    def __init__(
        self,
        transport: Transport,
        protocol_timeout: float = DEFAULT_PROTOCOL_TIMEOUT,
        history_size: int = 256,
        read_size: int = 1,
        on_disconnect: Optional[Callable[[Exception], None]] = None
    ) -> None:
        """
        Initialize modem core.

        Args:
            transport: Transport instance for communication
            protocol_timeout: Bound on each response wait in seconds
            history_size: Number of recent response lines kept
            read_size: Minimum bytes per transport read
            on_disconnect: Optional callback for disconnection events
        """
        self.transport = transport
        self.read_size = read_size

        # Writer hand-off; kept small so producers feel backpressure
        self._write_queue: "queue.Queue[bytes]" = queue.Queue(maxsize=1)

        self.protocol = ATProtocol(
            self.enqueue_write,
            default_timeout=protocol_timeout,
            history_size=history_size
        )
        self.events = EventDispatcher()

        # Parsed connection state
        self.session_status: Optional[SessionStatus] = None
        self.signal_quality: Optional[int] = None
        self.system_time: Optional[datetime] = None

        # Order matters: +SBDI, +CSQ:, -MSSTM:
        self._parsers: list[tuple[ResponseParser, str]] = [
            (SessionStatusParser(), "session_status"),
            (SignalQualityParser(), "signal_quality"),
            (SystemTimeParser(), "system_time"),
        ]

        # Thread management
        self._reader_thread: Optional[threading.Thread] = None
        self._writer_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False
        self._on_disconnect = on_disconnect

        # Error handling
        self._consecutive_errors = 0
        self._max_consecutive_errors = 5
        self._disconnected = False

        logger.info("Initialized ModemCore")

    def start(self) -> None:
        """
        Start the reader and writer threads.

        The reader continuously reads from the transport and publishes lines
        to the protocol; the writer drains the write queue to the transport.
        """
        if self._running:
            logger.warning("ModemCore already started")
            return

        # Reset disconnected state on start
        self._disconnected = False
        self._consecutive_errors = 0

        self._stop_event.clear()
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            daemon=True,
            name="ModemReaderThread"
        )
        self._writer_thread = threading.Thread(
            target=self._writer_loop,
            daemon=True,
            name="ModemWriterThread"
        )
        self._reader_thread.start()
        self._writer_thread.start()
        self._running = True
        logger.info("Started modem reader and writer threads")

    def stop(self) -> None:
        """
        Stop the reader and writer threads.

        Waits for the threads to terminate gracefully.
        """
        if not self._running and not self._reader_thread:
            return

        logger.info("Stopping modem threads...")
        self._stop_event.set()

        for thread in (self._reader_thread, self._writer_thread):
            if thread and thread is not threading.current_thread():
                thread.join(timeout=1.0)
                if thread.is_alive():
                    logger.warning(f"{thread.name} did not terminate in time")

        self._reader_thread = None
        self._writer_thread = None
        self._running = False
        logger.info("Stopped modem threads")

    def close(self) -> None:
        """
        Close the modem connection.

        Stops the threads and closes the transport.
        """
        logger.info("Closing modem connection")
        self.stop()
        self.transport.close()
        logger.info("Modem connection closed")

    def enqueue_write(self, data: bytes) -> None:
        """
        Queue bytes for the writer thread.

        Blocks while the writer is busy with an earlier item.
        """
        self._write_queue.put(data)

    def _writer_loop(self) -> None:
        """Write queued items to the transport, one whole item at a time."""
        logger.debug("Writer thread started")

        while not self._stop_event.is_set():
            try:
                data = self._write_queue.get(timeout=0.1)
            except queue.Empty:
                continue

            try:
                self.transport.write(data)
            except TransportError as e:
                # Not propagated; the waiting dialog will time out or see ERROR
                logger.error(f"Serial write error: {e}")

        logger.debug("Writer thread stopped")

    def _reader_loop(self) -> None:
        """
        Continuously read from the modem.

        Splits the stream into lines, runs the matching parser on each one
        and publishes it to the protocol's response channel.
        """
        logger.debug("Reader thread started")
        splitter = LineSplitter()

        while not self._stop_event.is_set():
            try:
                data = self.transport.read(self.read_size)

                # Reset error counter on successful read
                self._consecutive_errors = 0

                if not data:
                    continue

                for line in splitter.feed(data):
                    self._handle_line(line)

            except DeviceDisconnectedError as e:
                # End of stream: deliver any unterminated tail first
                tail = splitter.flush()
                if tail:
                    self._handle_line(tail)

                logger.error("Device disconnected, stopping reader thread")
                self._running = False
                self._disconnected = True

                # Call disconnect callback if provided
                if self._on_disconnect:
                    self._on_disconnect(e)

                break
            except Exception as e:
                # Handle consecutive errors with backoff
                self._consecutive_errors += 1
                logger.error(f"Error in reader loop ({self._consecutive_errors}/{self._max_consecutive_errors}): {e}")

                if self._consecutive_errors >= self._max_consecutive_errors:
                    logger.error(f"Too many consecutive errors ({self._consecutive_errors}), stopping reader thread")
                    self._running = False
                    break

                # Exponential backoff: 0.1s, 0.2s, 0.4s, 0.8s, 1.6s
                backoff_time = 0.1 * (2 ** (self._consecutive_errors - 1))
                time.sleep(backoff_time)

        logger.debug("Reader thread stopped")

    def _handle_line(self, raw: bytes) -> None:
        """
        Parse and publish one line.

        Args:
            raw: Trimmed line bytes
        """
        text = raw.decode("utf-8", errors="ignore")
        logger.debug(f"Reader received: {raw!r}")

        parsed = None
        for parser, attr in self._parsers:
            if parser.matches(text):
                try:
                    parsed = parser.parse(text)
                    setattr(self, attr, parsed)
                except RockBLOCKError as e:
                    logger.warning(f"Ignoring unparsable line {text!r}: {e}")
                break

        self.protocol.publish(ResponseLine(raw=raw, text=text, parsed=parsed), self._stop_event)

    def add_message_handler(self, handler: MessageHandler) -> None:
        """
        Register a handler for message events.

        Args:
            handler: Function called with each MessageEvent
        """
        self.events.add_handler(handler)

    def remove_message_handler(self, handler: MessageHandler) -> bool:
        """
        Unregister a message handler.

        Returns:
            True if handler was removed
        """
        return self.events.remove_handler(handler)

    def is_running(self) -> bool:
        """
        Check if the reader thread is running.

        Returns:
            True if running
        """
        return self._running

    def is_disconnected(self) -> bool:
        """
        Check if the device was disconnected during operation.

        This typically indicates a physical disconnection or USB port issue.

        Returns:
            True if device was disconnected, False otherwise
        """
        return self._disconnected

    def __enter__(self):
        """Context manager entry."""
        if not self._running:
            self.start()
        return self

    def __exit__(self, *exc):
        """Context manager exit."""
        self.close()

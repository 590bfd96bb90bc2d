"""
Main RockBLOCKModem class.

User-facing API that coordinates the core and the feature managers.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from .core import ModemCore, SerialTransport, Transport, MessageHandler, PersistentSender
from .core.protocol import DEFAULT_PROTOCOL_TIMEOUT
from .features import SessionManager, NetworkManager
from .features.network import DEFAULT_POLL_INTERVAL
from .features.session import validate_binary
from .types import RetryPolicy, SessionStatus
from .exceptions import ModemNotStartedError, RockBLOCKError

logger = logging.getLogger(__name__)

# Seconds allowed for each handshake response
HANDSHAKE_TIMEOUT = 10.0


class RockBLOCKModem:
    """
    Main interface for RockBLOCK / Iridium 9602-9603 SBD modem control.

    Provides a high-level API for SBD operations through feature managers:

    - session: Sending text and binary messages, mailbox downloads
    - network: Signal quality, waiting for coverage, network time

    Example usage with context manager:

    .. code-block:: python

        with RockBLOCKModem(port="/dev/ttyUSB0") as modem:
            modem.add_message_handler(lambda event: print(event.kind.name, event.data))

            modem.wait_for_network(timeout=120)
            modem.send_text("Hello from the field")

            # Fire and forget; retried until delivered
            modem.send_binary_persistent(b"\\x01\\x02")

    Example usage with manual lifecycle management:

    .. code-block:: python

        modem = RockBLOCKModem(port="/dev/ttyUSB0")
        modem.start()
        # ... use modem ...
        modem.close()
    """

    def __init__(
        self,
        port: Optional[str] = None,
        transport: Optional[Transport] = None,
        baudrate: int = 19200,
        timeout: float = 1.0,
        protocol_timeout: float = DEFAULT_PROTOCOL_TIMEOUT,
        history_size: int = 256,
        queue_size: int = 1024,
        retry_policy: Optional[RetryPolicy] = None,
        auto_start: bool = False,
        on_disconnect: Optional[Callable[[Exception], None]] = None
    ) -> None:
        """
        Initialize RockBLOCKModem.

        Args:
            port: Serial port path (e.g., "/dev/ttyUSB0"). Either port or transport required.
            transport: Custom transport instance (for testing). Overrides port if provided.
            baudrate: Serial port baud rate (default: 19200)
            timeout: Serial read timeout in seconds (default: 1.0)
            protocol_timeout: Bound on each response wait in seconds (default: 300)
            history_size: Recent response lines kept for diagnostics (default: 256)
            queue_size: Capacity of the persistent send queue (default: 1024)
            retry_policy: Backoff and attempt cap for persistent sends
                          (default: retry immediately, forever)
            auto_start: Start threads and run the handshake (default: False)
            on_disconnect: Optional callback function called when device disconnects.
                          Signature: callback(exception: Exception) -> None

        Raises:
            ValueError: If neither port nor transport is provided
            TransportError: If serial port cannot be opened

        Example:

        .. code-block:: python

            # Using serial port
            modem = RockBLOCKModem(port="/dev/ttyUSB0")

            # Give up on a persistent message after 10 attempts, backing off from 5s
            modem = RockBLOCKModem(
                port="/dev/ttyUSB0",
                retry_policy=RetryPolicy(initial_delay=5.0, max_attempts=10)
            )

            # Using custom transport (for testing)
            from rockblockpy.core import MockTransport
            modem = RockBLOCKModem(transport=MockTransport())
        """
        if transport is None and port is None:
            raise ValueError("Either 'port' or 'transport' must be provided")

        if transport is None:
            transport = SerialTransport(
                port=port,
                baudrate=baudrate,
                timeout=timeout
            )
            logger.info(f"Created serial transport for {port}")

        self._core = ModemCore(
            transport=transport,
            protocol_timeout=protocol_timeout,
            history_size=history_size,
            on_disconnect=on_disconnect
        )

        self.session = SessionManager(self._core)
        self.network = NetworkManager(self._core)

        self._persistent = PersistentSender(
            self.session.send_binary,
            self._core.events,
            queue_size=queue_size,
            retry_policy=retry_policy
        )

        self._started = False

        logger.info("Initialized RockBLOCKModem")

        if auto_start:
            self.start()

    def start(self) -> None:
        """
        Start the reader, writer and persistent sender threads, then
        perform the handshake (AT, then AT&K0 to disable flow control).

        Must be called before using the modem (unless auto_start=True or using context manager).

        Raises:
            ModemNotStartedError: If the modem does not answer the handshake
        """
        self._core.start()

        protocol = self._core.protocol
        try:
            with protocol.dialog():
                for cmd in ("AT", "AT&K0"):
                    protocol.send(cmd)
                    protocol.wait_for("OK", timeout=HANDSHAKE_TIMEOUT)
        except RockBLOCKError as e:
            logger.error(f"Handshake failed: {e}")
            self._core.stop()
            raise ModemNotStartedError(f"init() error: {e}", command=e.command) from e

        self._persistent.start()
        self._started = True
        logger.info("Modem started")

    def stop(self) -> None:
        """Stop all modem threads."""
        self._persistent.stop()
        self._core.stop()
        self._started = False
        logger.info("Modem stopped")

    def close(self) -> None:
        """
        Close the modem connection.

        Stops all threads and closes the transport.
        """
        self._persistent.stop()
        self._core.close()
        self._started = False
        logger.info("Modem closed")

    def _require_started(self) -> None:
        if not self._started:
            raise ModemNotStartedError("Modem not started; call start() first")

    def send_text(self, text: str) -> SessionStatus:
        """
        Send a text message and wait for the session result.

        Raises:
            SessionError: If the modem reports an MO failure
        """
        self._require_started()
        return self.session.send_text(text)

    def send_binary(self, payload: bytes) -> SessionStatus:
        """
        Send a binary message and wait for the session result.

        Raises:
            SessionError: If the modem reports an MO failure
            BinaryWriteError: If the modem rejects the upload
        """
        self._require_started()
        return self.session.send_binary(payload)

    def send_binary_persistent(self, payload: bytes, timeout: Optional[float] = None) -> None:
        """
        Queue a binary message for delivery, retrying until it is sent.

        Delivery is reported through a CONFIRM_SENT message event. Blocks
        only while the queue is full.

        Raises:
            ValueError: If the payload size is out of range
        """
        self._require_started()
        validate_binary(payload)
        self._persistent.enqueue(payload, timeout=timeout)

    def download_message(self) -> bytes:
        """Download the MT message reported by the last session."""
        self._require_started()
        return self.session.download_message()

    def check_mailbox(self) -> SessionStatus:
        """Run a session to pick up waiting MT messages."""
        self._require_started()
        return self.session.check_mailbox()

    def get_signal_quality(self) -> int:
        """Get signal bars (0-5)."""
        self._require_started()
        return self.network.get_signal_quality()

    def wait_for_network(self, timeout: float, poll_interval: float = DEFAULT_POLL_INTERVAL) -> int:
        """
        Wait for a non-zero signal reading.

        Raises:
            NetworkTimeoutError: If no signal was seen within ``timeout`` seconds
        """
        self._require_started()
        return self.network.wait_for_network(timeout, poll_interval=poll_interval)

    def get_time(self) -> datetime:
        """Get Iridium network time (aware UTC datetime)."""
        self._require_started()
        return self.network.get_time()

    def send_raw_at(
        self,
        cmd: str,
        strip_ok: bool = False,
        timeout: Optional[float] = None
    ) -> list[str]:
        """
        Send a raw AT command.

        For advanced users who need commands not covered by feature managers.
        The command echo, if the modem echoes, is left out of the result.

        Args:
            cmd: AT command (e.g., "AT+CGSN" or "+CGSN")
            strip_ok: Remove "OK" from response
            timeout: Response timeout in seconds (uses protocol default if None)

        Returns:
            List of response lines

        Raises:
            ATTimeoutError: If no OK arrives in time
            ATCommandError: If command returns ERROR

        Example:

        .. code-block:: python

            imei = modem.send_raw_at("AT+CGSN", strip_ok=True)[0]
        """
        self._require_started()

        cmd = cmd.strip()
        if not cmd.upper().startswith("AT"):
            cmd = f"AT{cmd}"

        protocol = self._core.protocol
        with protocol.dialog():
            with protocol.capture() as lines:
                protocol.send(cmd)
                protocol.wait_for("OK", timeout=timeout)

        response = [raw.decode("utf-8", errors="ignore") for raw in lines]
        if response and response[0] == cmd:
            response = response[1:]
        if strip_ok and response and response[-1] == "OK":
            response = response[:-1]
        return response

    def add_message_handler(self, handler: MessageHandler) -> None:
        """
        Register a handler for message events.

        Args:
            handler: Function called with a MessageEvent for each sent
                     confirmation and each received message.
                     Signature: handler(event: MessageEvent) -> None

        Example:

        .. code-block:: python

            def on_message(event: MessageEvent):
                if event.kind == EventKind.RECEIVED:
                    print(f"Received: {event.data!r}")

            modem.add_message_handler(on_message)
        """
        self._core.add_message_handler(handler)

    def remove_message_handler(self, handler: MessageHandler) -> bool:
        """
        Unregister a message handler.

        Returns:
            True if handler was removed, False if not found
        """
        return self._core.remove_message_handler(handler)

    def set_message_handler(self, handler: MessageHandler) -> None:
        """Replace all message handlers with ``handler``."""
        self._core.events.set_handler(handler)

    @property
    def session_status(self) -> Optional[SessionStatus]:
        """Last parsed session status."""
        return self._core.session_status

    @property
    def signal_quality(self) -> Optional[int]:
        """Last parsed signal quality."""
        return self._core.signal_quality

    @property
    def system_time(self) -> Optional[datetime]:
        """Last parsed network time."""
        return self._core.system_time

    @property
    def history(self) -> list[bytes]:
        """Recent response lines, oldest first."""
        return list(self._core.protocol.history)

    @property
    def pending_messages(self) -> int:
        """Persistent messages not yet delivered."""
        return self._persistent.pending

    def wait_until_sent(self) -> None:
        """Block until every persistent message has been handled."""
        self._persistent.join()

    @property
    def is_running(self) -> bool:
        """
        Check if the modem reader thread is running.

        Returns:
            True if running, False otherwise
        """
        return self._core.is_running()

    @property
    def is_disconnected(self) -> bool:
        """
        Check if the device was disconnected.

        Returns:
            True if device disconnected, False otherwise
        """
        return self._core.is_disconnected()

    def __enter__(self):
        """
        Context manager entry.

        Automatically starts the modem if not already started.
        """
        if not self._started:
            self.start()
        return self

    def __exit__(self, *exc):
        """
        Context manager exit.

        Automatically closes the modem connection.
        """
        self.close()

    def __repr__(self) -> str:
        """String representation of modem."""
        status = "running" if self.is_running else "stopped"
        return f"<RockBLOCKModem status={status}>"

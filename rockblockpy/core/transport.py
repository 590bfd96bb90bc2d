"""
Transport layer abstraction for modem communication.

Provides abstractions for serial communication with dependency injection support.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Union

import serial
from serial import SerialException

from ..exceptions import TransportError, DeviceDisconnectedError

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract base class for modem transport."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Write data to the transport.

        Args:
            data: Bytes to write

        Returns:
            Number of bytes written

        Raises:
            TransportError: If write fails
        """
        pass

    @abstractmethod
    def read(self, size: int = 1) -> bytes:
        """
        Read available bytes from the transport.

        Args:
            size: Minimum number of bytes to wait for

        Returns:
            Bytes read, or b"" if nothing arrived before the read timeout

        Raises:
            DeviceDisconnectedError: If the stream has ended
            TransportError: If read fails
        """
        pass

    @abstractmethod
    def reset_input_buffer(self) -> None:
        """Clear the input buffer."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if transport is open."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the transport."""
        pass


class SerialTransport(Transport):
    """Serial port transport implementation."""

    def __init__(
        self,
        port: str,
        baudrate: int = 19200,
        timeout: float = 1.0
    ) -> None:
        """
        Initialize serial transport.

        Args:
            port: Serial port path (e.g., /dev/ttyUSB0)
            baudrate: Baud rate for serial communication (RockBLOCK default 19200)
            timeout: Read timeout in seconds

        Raises:
            TransportError: If serial port cannot be opened
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout

        try:
            self._serial = serial.Serial(
                port=port,
                baudrate=baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                # Matches AT&K0 sent during the handshake
                rtscts=False,
                timeout=timeout
            )
            logger.info(f"Opened serial port {port} at {baudrate} baud")
        except SerialException as e:
            logger.error(f"Failed to open serial port {port}: {e}")
            raise TransportError(f"Failed to open serial port {port}: {e}") from e

    def write(self, data: bytes) -> int:
        """Write data to serial port."""
        try:
            written = self._serial.write(data)
            self._serial.flush()
            logger.debug(f"Wrote {written} bytes: {data!r}")
            return written
        except SerialException as e:
            logger.error(f"Serial write failed: {e}")
            raise TransportError(f"Serial write failed: {e}") from e

    def read(self, size: int = 1) -> bytes:
        """Read whatever is waiting on the serial port (at least ``size`` bytes or timeout)."""
        try:
            waiting = self._serial.in_waiting
            data = self._serial.read(max(size, waiting))

            if data:
                logger.debug(f"Read {len(data)} bytes: {data!r}")

            return data
        except (SerialException, OSError) as e:
            error_str = str(e).lower()

            # Detect device disconnection
            if any(phrase in error_str for phrase in [
                "device disconnected",
                "device reports readiness to read but returned no data",
                "no such device",
                "device not configured",
                "input/output error",
                "port not open",
            ]):
                logger.error(f"Device disconnected: {e}")
                raise DeviceDisconnectedError(
                    f"Serial device disconnected: {e}",
                    response=[str(e)]
                ) from e

            # Other serial errors
            logger.error(f"Serial read failed: {e}")
            raise TransportError(f"Serial read failed: {e}") from e

    def reset_input_buffer(self) -> None:
        """Clear the serial input buffer."""
        try:
            self._serial.reset_input_buffer()
            logger.debug("Reset input buffer")
        except SerialException as e:
            logger.error(f"Failed to reset input buffer: {e}")
            raise TransportError(f"Failed to reset input buffer: {e}") from e

    def is_open(self) -> bool:
        """Check if serial port is open."""
        return bool(self._serial and self._serial.is_open)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial and self._serial.is_open:
            self._serial.close()
            logger.info(f"Closed serial port {self.port}")


class MockTransport(Transport):
    """
    Mock transport for testing.

    Simulates modem output without requiring hardware. Queued chunks are
    handed out one per ``read`` call, in the order they were added.
    """

    def __init__(self, idle_delay: float = 0.01) -> None:
        """
        Initialize mock transport.

        Args:
            idle_delay: Seconds a read blocks when nothing is queued
        """
        self._open = True
        self._chunks: Deque[bytes] = deque()
        self._lock = threading.Lock()
        self._idle_delay = idle_delay
        self._failing_writes = 0
        self.written: list[bytes] = []
        logger.info("Initialized MockTransport")

    def add_response(self, lines: list[Union[str, bytes]]) -> None:
        """
        Queue response lines, each terminated with CR LF.

        Args:
            lines: Response lines (e.g., ["+CSQ:4", "OK"])
        """
        with self._lock:
            for line in lines:
                if isinstance(line, str):
                    line = line.encode("utf-8")
                self._chunks.append(line + b"\r\n")
            logger.debug(f"Added mock response: {lines}")

    def add_raw(self, data: bytes) -> None:
        """Queue raw bytes exactly as given (no terminator)."""
        with self._lock:
            self._chunks.append(bytes(data))
            logger.debug(f"Added mock raw data: {data!r}")

    def fail_writes(self, count: int = 1) -> None:
        """Make the next ``count`` writes raise TransportError."""
        with self._lock:
            self._failing_writes = count

    def write(self, data: bytes) -> int:
        """Simulate writing data."""
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)",
                response=["MockTransport closed"]
            )

        with self._lock:
            if self._failing_writes > 0:
                self._failing_writes -= 1
                raise TransportError(f"Simulated write failure: {data!r}")
            self.written.append(bytes(data))

        logger.debug(f"Mock write: {data!r}")
        return len(data)

    def read(self, size: int = 1) -> bytes:
        """
        Simulate reading from modem.

        Returns the next queued chunk, or b"" after ``idle_delay``. Once
        closed, chunks still queued are drained before end of stream.
        """
        with self._lock:
            if self._chunks:
                chunk = self._chunks.popleft()
                logger.debug(f"Mock read: {chunk!r}")
                return chunk

        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)",
                response=["MockTransport closed"]
            )

        # No data available
        time.sleep(self._idle_delay)
        return b""

    def reset_input_buffer(self) -> None:
        """Nothing is buffered below the queued chunks."""
        logger.debug("Reset mock input buffer")

    def is_open(self) -> bool:
        """Check if mock transport is open."""
        return self._open

    def close(self) -> None:
        """Close mock transport."""
        self._open = False
        logger.info("Closed MockTransport")

    def clear_responses(self) -> None:
        """Clear all queued responses (useful for testing)."""
        with self._lock:
            self._chunks.clear()
            logger.debug("Cleared mock response queue")

    def written_text(self) -> list[str]:
        """Writes so far, decoded, without the trailing CR."""
        with self._lock:
            return [w.decode("utf-8", errors="replace").rstrip("\r") for w in self.written]

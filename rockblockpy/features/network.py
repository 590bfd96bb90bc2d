"""
Network manager.

Handles signal quality, waiting for network coverage and Iridium system time.
"""

import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..types import MatchMode
from ..parsers.status import SystemTimeParser
from ..exceptions import ATParseError, NetworkTimeoutError, RockBLOCKError

if TYPE_CHECKING:
    from ..core import ModemCore

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class NetworkManager:
    """
    Manages network operations.

    Provides methods for signal monitoring and network time.
    """

    def __init__(self, modem_core: "ModemCore") -> None:
        """
        Initialize network manager.

        Args:
            modem_core: ModemCore instance for AT command execution
        """
        self.modem = modem_core
        self.protocol = modem_core.protocol

        # Used to report why the reader rejected a time line
        self._time_parser = SystemTimeParser()

        logger.debug("Initialized NetworkManager")

    def get_signal_quality(self) -> int:
        """
        Get signal quality.

        Returns:
            Signal bars, 0 (no signal) to 5

        Example:

        .. code-block:: python

            bars = modem.network.get_signal_quality()
            print(f"Signal: {bars}/5")
        """
        with self.protocol.dialog():
            return self._query_signal()

    def wait_for_network(self, timeout: float, poll_interval: float = DEFAULT_POLL_INTERVAL) -> int:
        """
        Wait until the modem reports a usable signal.

        Polls immediately and then every ``poll_interval`` seconds. A failed
        query aborts the wait without retrying.

        Args:
            timeout: Maximum time to wait in seconds
            poll_interval: Time between checks in seconds

        Returns:
            The first non-zero signal reading

        Raises:
            NetworkTimeoutError: If no signal was seen before the deadline

        Example:

        .. code-block:: python

            try:
                modem.network.wait_for_network(timeout=120)
            except NetworkTimeoutError:
                print("No satellite in view")
        """
        logger.info(f"Waiting for network (timeout={timeout}s)")
        end_time = time.monotonic() + timeout

        with self.protocol.dialog():
            while True:
                if time.monotonic() >= end_time:
                    logger.warning("Network wait timeout")
                    raise NetworkTimeoutError(f"No signal within {timeout}s", command="AT+CSQ")

                signal = self._query_signal()
                if signal != 0:
                    logger.info(f"Network available (signal={signal})")
                    return signal

                logger.debug("No signal yet")
                remaining = end_time - time.monotonic()
                time.sleep(max(0.0, min(poll_interval, remaining)))

    def get_time(self) -> datetime:
        """
        Get Iridium network time.

        Returns:
            Network time as an aware UTC datetime

        Raises:
            ATTimeoutError: If no time response arrived
            ATCommandError: If the modem answered ERROR
            ATParseError: If the time response was malformed
            NetworkError: If the modem has no network service

        Errors raised before a time line arrived carry ``fallback_time``,
        the local clock as a best-effort value.

        Example:

        .. code-block:: python

            print(f"Iridium time: {modem.network.get_time().isoformat()}")
        """
        logger.info("Getting system time")

        with self.protocol.dialog():
            self.protocol.send("AT-MSSTM")

            try:
                line = self.protocol.wait_for("-MSSTM:", MatchMode.PREFIX)
            except RockBLOCKError as e:
                e.fallback_time = datetime.now(timezone.utc)
                raise

            try:
                self.protocol.wait_for("OK")
            except RockBLOCKError as e:
                logger.warning(f"No OK after system time: {e}")

            if line.parsed is None:
                # Reader could not parse it; re-parse for the specific error
                return self._time_parser.parse(line.text)

            logger.debug(f"System time: {line.parsed.isoformat()}")
            return line.parsed

    def _query_signal(self) -> int:
        """Send AT+CSQ and return the parsed reading (caller holds the token)."""
        self.protocol.send("AT+CSQ")
        line = self.protocol.wait_for("+CSQ:", MatchMode.PREFIX)
        self.protocol.wait_for("OK")

        if not isinstance(line.parsed, int):
            raise ATParseError(
                f"Malformed signal quality: {line.text}",
                command="AT+CSQ",
                response=[line.text]
            )

        logger.debug(f"Signal quality: {line.parsed}")
        return line.parsed

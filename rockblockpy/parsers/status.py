"""
Status response parsers.

Parses the session-status, signal-quality and system-time response families.
"""

import logging
from datetime import datetime

from .base import ResponseParser, IntValueParser, CommaSeparatedParser
from ..types import SessionStatus, IRIDIUM_EPOCH, IRIDIUM_TICK
from ..exceptions import ATParseError, NetworkError

logger = logging.getLogger(__name__)


class SessionStatusParser(ResponseParser[SessionStatus]):
    """Parser for +SBDI / +SBDIX (session status) responses."""

    prefix = "+SBDI"

    def __init__(self) -> None:
        self._fields = CommaSeparatedParser("+SBDI", "AT+SBDI", expected_parts=6)

    def parse(self, line: str) -> SessionStatus:
        """
        Parse a session status line.

        Expected formats:
            "+SBDI: 1, 4, 1, 2, 6, 9"
            "+SBDIX: 0, 12, 0, 0, 0, 0"
        """
        mo_status, momsn, mt_status, mtmsn, mt_length, mt_queued = self._fields.parse(line)
        return SessionStatus(
            mo_status=mo_status,
            momsn=momsn,
            mt_status=mt_status,
            mtmsn=mtmsn,
            mt_length=mt_length,
            mt_queued=mt_queued
        )


class SignalQualityParser(IntValueParser):
    """Parser for AT+CSQ (signal quality) response."""

    def __init__(self) -> None:
        super().__init__("+CSQ:", "AT+CSQ")


class SystemTimeParser(ResponseParser[datetime]):
    """
    Parser for AT-MSSTM (Iridium system time) response.

    The modem reports a hex count of 90 ms ticks since the Iridium epoch.
    The counter rolls over roughly every 12 years; rollover is not detected.
    """

    prefix = "-MSSTM:"

    def __init__(self) -> None:
        self._ticks = IntValueParser("-MSSTM:", "AT-MSSTM", base=16)

    def parse(self, line: str) -> datetime:
        """
        Parse AT-MSSTM response.

        Expected format: "-MSSTM: 1b6c1f3a"
        """
        if "no network service" in line.lower():
            raise NetworkError(
                "No network service for system time",
                command="AT-MSSTM",
                response=[line]
            )

        ticks = self._ticks.parse(line)
        if ticks < 0:
            raise ATParseError(
                f"Negative tick count: {ticks}",
                command="AT-MSSTM",
                response=[line]
            )
        return IRIDIUM_EPOCH + IRIDIUM_TICK * ticks

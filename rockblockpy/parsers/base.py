"""
Base parser classes and utilities.

Provides reusable parsing functionality for modem response lines.
"""

import logging
from abc import ABC, abstractmethod
from typing import TypeVar, Generic

from ..exceptions import ATParseError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ResponseParser(ABC, Generic[T]):
    """
    Abstract base class for response parsers.

    Parsers convert a single response line into a typed value. They never
    touch connection state; a failed parse raises and leaves it alone.
    """

    #: Line prefix this parser accepts
    prefix: str = ""

    def matches(self, line: str) -> bool:
        """Check if the line belongs to this parser's response family."""
        return bool(self.prefix) and line.startswith(self.prefix)

    @abstractmethod
    def parse(self, line: str) -> T:
        """
        Parse a response line.

        Args:
            line: Trimmed response line from the modem

        Returns:
            Parsed value

        Raises:
            ATParseError: If line cannot be parsed
        """
        pass

    def _body(self, line: str, command: str) -> str:
        """Return the text after the ``prefix...:`` marker."""
        if not self.matches(line):
            raise ATParseError(
                f"Not a {self.prefix} response: {line}",
                command=command,
                response=[line]
            )

        _, sep, body = line.partition(":")
        if not sep:
            raise ATParseError(
                f"Missing ':' in {self.prefix} response: {line}",
                command=command,
                response=[line]
            )
        return body.strip()


class IntValueParser(ResponseParser[int]):
    """Parser for ``<prefix>: <int>`` responses."""

    def __init__(self, prefix: str, command: str, base: int = 10):
        """
        Initialize parser.

        Args:
            prefix: Response prefix (e.g., "+CSQ:")
            command: Command producing the response, for error context
            base: Numeric base of the value
        """
        self.prefix = prefix
        self.command = command
        self.base = base

    def parse(self, line: str) -> int:
        """Parse integer value."""
        body = self._body(line, self.command)

        try:
            return int(body, self.base)
        except ValueError as e:
            raise ATParseError(
                f"Failed to parse integer: {body}",
                command=self.command,
                response=[line]
            ) from e


class CommaSeparatedParser(ResponseParser[list[int]]):
    """Parser for ``<prefix>: a, b, c`` integer lists."""

    def __init__(self, prefix: str, command: str, expected_parts: int | None = None):
        """
        Initialize parser.

        Args:
            prefix: Response prefix (e.g., "+SBDI")
            command: Command producing the response, for error context
            expected_parts: Expected number of parts (None = any)
        """
        self.prefix = prefix
        self.command = command
        self.expected_parts = expected_parts

    def parse(self, line: str) -> list[int]:
        """Parse comma-separated integers."""
        body = self._body(line, self.command)
        parts = [p.strip() for p in body.split(",")]

        if self.expected_parts is not None and len(parts) != self.expected_parts:
            raise ATParseError(
                f"Expected {self.expected_parts} parts, got {len(parts)}",
                command=self.command,
                response=[line]
            )

        try:
            return [int(p, 10) for p in parts]
        except ValueError as e:
            raise ATParseError(
                f"Non-numeric field in response: {line}",
                command=self.command,
                response=[line]
            ) from e

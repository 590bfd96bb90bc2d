"""
Exceptions for RockBLOCKPy library.

Provides detailed error information for debugging SBD modem dialogs.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .types import SessionStatus


class RockBLOCKError(Exception):
    """
    Base exception for RockBLOCK modem errors.

    All RockBLOCKPy exceptions inherit from this class.
    """

    #: Best-effort clock value attached by time queries that failed
    fallback_time: Optional[datetime] = None

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        response: Optional[list[str]] = None
    ) -> None:
        """
        Initialize exception with context.

        Args:
            message: Error description
            command: AT command that caused the error (if applicable)
            response: Modem response (if applicable)
        """
        self.command = command
        self.response = response
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with context."""
        parts = [super().__str__()]

        if self.command:
            parts.append(f"Command: {self.command}")

        if self.response:
            parts.append(f"Response: {self.response}")

        return " | ".join(parts)


class ATTimeoutError(RockBLOCKError):
    """
    Raised when an expected response line does not arrive in time.

    This typically indicates:
    - Modem is not responding
    - Serial connection issue
    - Satellite session took longer than the protocol timeout
    """
    pass


class ATParseError(RockBLOCKError):
    """
    Raised when a response line cannot be parsed.

    This indicates:
    - Unexpected response prefix
    - Wrong number of fields
    - Non-numeric field
    """
    pass


class ATCommandError(RockBLOCKError):
    """Raised when the modem answers a command with ERROR."""
    pass


class TransportError(RockBLOCKError):
    """
    Raised when transport layer fails.

    This indicates:
    - Serial port issues
    - Connection lost
    - Hardware communication failure
    """
    pass


class DeviceDisconnectedError(TransportError):
    """
    Raised when device is disconnected during operation.

    This is a fatal error that requires closing and reopening the connection.
    """
    pass


class ModemNotStartedError(RockBLOCKError):
    """
    Raised when attempting to use the modem before it has been started.
    """
    pass


class NetworkError(RockBLOCKError):
    """
    Raised when the Iridium network is not available.

    This indicates:
    - No signal before the wait deadline
    - Modem reports no network service for time queries
    """
    pass


class NetworkTimeoutError(NetworkError, ATTimeoutError):
    """Raised when no signal was seen before a network wait deadline."""
    pass


class SessionError(RockBLOCKError):
    """
    Raised when an SBD session completes but the MO transfer failed.

    The full session status reported by the modem is available as ``status``.
    """

    def __init__(
        self,
        message: str,
        status: "SessionStatus",
        command: Optional[str] = None,
        response: Optional[list[str]] = None
    ) -> None:
        self.status = status
        super().__init__(message, command=command, response=response)


class BinaryWriteError(RockBLOCKError):
    """
    Raised when the modem rejects a binary upload (AT+SBDWB).

    ``code`` holds the modem's result: 1 = timeout, 2 = checksum mismatch,
    3 = message size invalid.
    """

    def __init__(
        self,
        message: str,
        code: int,
        command: Optional[str] = None,
        response: Optional[list[str]] = None
    ) -> None:
        self.code = code
        super().__init__(message, command=command, response=response)


class FrameIntegrityError(RockBLOCKError):
    """
    Raised when a downloaded binary frame fails validation.

    This indicates:
    - Declared length does not match payload length
    - Checksum mismatch
    """
    pass


class MailboxEmptyError(RockBLOCKError):
    """Raised when a download is requested but no MT message is waiting."""
    pass

"""
RockBLOCKPy - Python library for Iridium SBD modems (RockBLOCK, 9602/9603).
"""

from .version import __version__
from .modem import RockBLOCKModem
from .core import MockTransport, SerialTransport, Transport

from .types import (
    SessionStatus,
    MessageEvent,
    EventKind,
    MatchMode,
    RetryPolicy,
    WriteResult,
    IRIDIUM_EPOCH,
)

from .exceptions import (
    RockBLOCKError,
    ATTimeoutError,
    ATParseError,
    ATCommandError,
    TransportError,
    DeviceDisconnectedError,
    ModemNotStartedError,
    NetworkError,
    NetworkTimeoutError,
    SessionError,
    BinaryWriteError,
    FrameIntegrityError,
    MailboxEmptyError,
)

__all__ = [
    "__version__",
    "RockBLOCKModem",
    "MockTransport",
    "SerialTransport",
    "Transport",
    "SessionStatus",
    "MessageEvent",
    "EventKind",
    "MatchMode",
    "RetryPolicy",
    "WriteResult",
    "IRIDIUM_EPOCH",
    "RockBLOCKError",
    "ATTimeoutError",
    "ATParseError",
    "ATCommandError",
    "TransportError",
    "DeviceDisconnectedError",
    "ModemNotStartedError",
    "NetworkError",
    "NetworkTimeoutError",
    "SessionError",
    "BinaryWriteError",
    "FrameIntegrityError",
    "MailboxEmptyError",
]

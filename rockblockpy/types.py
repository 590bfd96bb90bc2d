"""
Data types and structures for RockBLOCKPy.

Provides type-safe representations of modem data.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum, IntEnum
from typing import Optional


# Iridium system time epoch (era 2), see Iridium ITN0018
IRIDIUM_EPOCH = datetime(2014, 5, 11, 14, 23, 55, tzinfo=timezone.utc)

# Length of one -MSSTM tick
IRIDIUM_TICK = timedelta(milliseconds=90)

# Largest payloads accepted by AT+SBDWB / AT+SBDWT
MAX_BINARY_LENGTH = 340
MAX_TEXT_LENGTH = 120


class MatchMode(Enum):
    """How a waited-for response line is compared against its target."""
    EXACT = "exact"
    PREFIX = "prefix"
    SUFFIX = "suffix"


class EventKind(IntEnum):
    """Kinds of message events delivered to handlers."""
    CONFIRM_SENT = 0
    RECEIVED = 1


class WriteResult(IntEnum):
    """Result codes for AT+SBDWB binary uploads."""
    ACCEPTED = 0
    TIMEOUT = 1
    BAD_CHECKSUM = 2
    BAD_SIZE = 3


@dataclass(frozen=True)
class SessionStatus:
    """
    Session status from +SBDI / +SBDIX.

    MO status:
        0: No MO message to send
        1: MO message transferred successfully
        2+: Transfer failed (see modem documentation)

    MT status:
        0: No MT message waiting
        1: MT message received and pending download
        2: Error checking the mailbox
    """
    mo_status: int
    momsn: int
    mt_status: int
    mtmsn: int
    mt_length: int
    mt_queued: int

    @property
    def mo_success(self) -> bool:
        """Check if the MO message was delivered."""
        return self.mo_status == 1

    @property
    def mt_waiting(self) -> bool:
        """Check if an MT message was retrieved and awaits download."""
        return self.mt_status == 1


@dataclass(frozen=True)
class MessageEvent:
    """A sent confirmation or a received message, with its raw bytes."""
    kind: EventKind
    data: bytes


@dataclass
class RetryPolicy:
    """
    Retry behaviour of the persistent sender.

    The defaults retry immediately and forever.
    """
    initial_delay: float = 0.0
    backoff: float = 2.0
    max_delay: float = 60.0
    max_attempts: Optional[int] = None

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before retry number ``attempt`` (1-based)."""
        if self.initial_delay <= 0:
            return 0.0
        delay = self.initial_delay * (self.backoff ** (attempt - 1))
        return min(delay, self.max_delay)

    def exhausted(self, attempts: int) -> bool:
        """Check if no further attempts are allowed."""
        return self.max_attempts is not None and attempts >= self.max_attempts

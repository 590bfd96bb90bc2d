"""
Core modem infrastructure.

Provides low-level building blocks for modem communication:
- Transport: Serial communication abstraction
- Protocol: Line splitting, response waits, dialog token
- Events: Message event dispatch
- PersistentSender: Retry-until-sent worker
- ModemCore: Coordination of all core components
"""

from .transport import Transport, SerialTransport, MockTransport
from .protocol import ATProtocol, LineSplitter, ResponseLine, CaptureState
from .events import EventDispatcher, MessageHandler
from .persistent import PersistentSender
from .modem import ModemCore

__all__ = [
    "Transport",
    "SerialTransport",
    "MockTransport",
    "ATProtocol",
    "LineSplitter",
    "ResponseLine",
    "CaptureState",
    "EventDispatcher",
    "MessageHandler",
    "PersistentSender",
    "ModemCore",
]

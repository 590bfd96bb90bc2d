"""
Feature managers for modem functionality.

Provides high-level managers for different modem capabilities:
- SessionManager: Sending messages, mailbox checks, MT downloads
- NetworkManager: Signal quality, network wait, system time
"""

from .session import SessionManager
from .network import NetworkManager

__all__ = [
    "SessionManager",
    "NetworkManager",
]

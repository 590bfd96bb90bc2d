"""
Pytest configuration and fixtures.

Provides shared test fixtures for RockBLOCKPy tests.
"""

import time

import pytest
import logging

from rockblockpy.core import MockTransport, ModemCore
from rockblockpy.parsers.frame import encode_frame
from rockblockpy import RockBLOCKModem, RetryPolicy


# Enable logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Keeps failing waits short
TEST_PROTOCOL_TIMEOUT = 2.0


def wait_for_writes(transport: MockTransport, count: int, timeout: float = 2.0) -> list[bytes]:
    """
    Wait until the writer thread has written ``count`` items.

    Dialogs can finish before their last command reaches the transport.
    """
    end_time = time.monotonic() + timeout
    while len(transport.written) < count and time.monotonic() < end_time:
        time.sleep(0.01)
    return list(transport.written)


def add_download(transport: MockTransport, payload: bytes, echo: bool = True) -> None:
    """Queue an AT+SBDRB response carrying ``payload``."""
    if echo:
        transport.add_response([b"AT+SBDRB"])
    transport.add_raw(encode_frame(payload) + b"\r\nOK\r\n")


@pytest.fixture
def mock_transport():
    """
    Create a MockTransport instance for testing.

    Example:
        def test_something(mock_transport):
            mock_transport.add_response(["OK"])
            # ... test code ...
    """
    transport = MockTransport()
    yield transport
    transport.close()


@pytest.fixture
def modem_core(mock_transport):
    """
    Create a started ModemCore instance with MockTransport.

    Example:
        def test_wait(modem_core, mock_transport):
            mock_transport.add_response(["+CSQ:4", "OK"])
            line = modem_core.protocol.wait_for("+CSQ:", MatchMode.PREFIX)
            assert line.parsed == 4
    """
    core = ModemCore(transport=mock_transport, protocol_timeout=TEST_PROTOCOL_TIMEOUT)
    core.start()
    yield core
    core.close()


@pytest.fixture
def modem(mock_transport):
    """
    Create a started RockBLOCKModem with MockTransport.

    The handshake responses are queued before starting.

    Example:
        def test_signal(modem, mock_transport):
            mock_transport.add_response(["+CSQ:4", "OK"])
            assert modem.get_signal_quality() == 4
    """
    mock_transport.add_response(["OK", "OK"])
    modem_instance = RockBLOCKModem(
        transport=mock_transport,
        protocol_timeout=TEST_PROTOCOL_TIMEOUT,
        retry_policy=RetryPolicy(max_attempts=5)
    )
    modem_instance.start()
    yield modem_instance
    modem_instance.close()


@pytest.fixture
def events(modem):
    """Collect message events dispatched by the modem."""
    received = []
    modem.add_message_handler(received.append)
    return received


@pytest.fixture
def session_success_response():
    """Session lines for a delivered MO message with no MT waiting."""
    return ["+SBDI: 1, 12, 0, 0, 0, 0", "OK"]


@pytest.fixture
def session_mt_waiting_response():
    """Session lines for a delivered MO message with an MT message waiting."""
    return ["+SBDI: 1, 4, 1, 2, 6, 9", "OK"]

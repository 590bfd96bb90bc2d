"""
Tests for persistent (retry-until-sent) delivery.
"""

import queue
import threading
import time

import pytest
from rockblockpy.core import EventDispatcher, PersistentSender
from rockblockpy.types import EventKind, RetryPolicy, SessionStatus
from rockblockpy.exceptions import SessionError, TransportError

SUCCESS_LINES = ["OK", "READY", "0", "OK", "+SBDI: 1, 5, 0, 0, 0, 0", "OK"]


def test_persistent_send_retries_until_success(modem, mock_transport, events):
    """Test a failed first attempt is retried and confirmed exactly once."""
    # First attempt: the clear-buffers write fails and the modem answers ERROR
    mock_transport.fail_writes(1)
    mock_transport.add_response(["ERROR"])
    mock_transport.add_response(SUCCESS_LINES)

    modem.send_binary_persistent(b"\x01\x02")
    modem.wait_until_sent()

    assert [(e.kind, e.data) for e in events] == [(EventKind.CONFIRM_SENT, b"\x01\x02")]
    assert modem.pending_messages == 0


def test_persistent_send_fifo_order(modem, mock_transport, events):
    """Test queued messages are delivered in order."""
    mock_transport.add_response(SUCCESS_LINES)
    mock_transport.add_response(SUCCESS_LINES)

    modem.send_binary_persistent(b"first")
    modem.send_binary_persistent(b"second")
    modem.wait_until_sent()

    assert [e.data for e in events] == [b"first", b"second"]
    assert all(e.kind == EventKind.CONFIRM_SENT for e in events)


def test_persistent_send_rejects_invalid_payload(modem):
    """Test invalid payloads are refused at enqueue time."""
    with pytest.raises(ValueError):
        modem.send_binary_persistent(b"")


def _failing_status():
    return SessionStatus(2, 1, 0, 0, 0, 0)


def test_sender_gives_up_after_max_attempts():
    """Test the attempt cap drops a message without confirming it."""
    events = EventDispatcher()
    confirmed = []
    events.add_handler(confirmed.append)
    attempts = []

    def send(payload):
        attempts.append(payload)
        raise SessionError("Send message error", status=_failing_status())

    sender = PersistentSender(send, events, retry_policy=RetryPolicy(max_attempts=3))
    sender.start()
    sender.enqueue(b"doomed")
    sender.join()
    sender.stop()

    assert attempts == [b"doomed"] * 3
    assert confirmed == []


def test_sender_succeeds_after_failures():
    """Test errors are retried and never reach the enqueueing caller."""
    events = EventDispatcher()
    confirmed = []
    events.add_handler(confirmed.append)
    failures = [TransportError("link down"), SessionError("Send message error", status=_failing_status())]

    def send(payload):
        if failures:
            raise failures.pop(0)

    sender = PersistentSender(send, events)
    sender.start()
    sender.enqueue(b"payload")
    sender.join()
    sender.stop()

    assert [(e.kind, e.data) for e in confirmed] == [(EventKind.CONFIRM_SENT, b"payload")]


def test_sender_drops_invalid_payload():
    """Test a payload the send refuses outright is not retried."""
    events = EventDispatcher()
    calls = []

    def send(payload):
        calls.append(payload)
        raise ValueError("too long")

    sender = PersistentSender(send, events)
    sender.start()
    sender.enqueue(b"x")
    sender.join()
    sender.stop()

    assert calls == [b"x"]


def test_enqueue_blocks_when_full():
    """Test a full queue applies backpressure instead of dropping."""
    events = EventDispatcher()
    release = threading.Event()

    def send(payload):
        release.wait(timeout=2.0)

    sender = PersistentSender(send, events, queue_size=1)
    sender.start()
    sender.enqueue(b"a")
    # Wait until the worker has picked up the first item
    for _ in range(100):
        if sender._queue.empty():
            break
        time.sleep(0.01)
    sender.enqueue(b"b")

    with pytest.raises(queue.Full):
        sender.enqueue(b"c", timeout=0.1)

    release.set()
    sender.join()
    sender.stop()


def test_retry_policy_delays():
    """Test backoff growth and cap."""
    policy = RetryPolicy(initial_delay=1.0, backoff=2.0, max_delay=5.0, max_attempts=4)

    assert [policy.delay_for(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]
    assert policy.exhausted(3) is False
    assert policy.exhausted(4) is True


def test_retry_policy_defaults_retry_forever():
    """Test the default policy retries immediately without a cap."""
    policy = RetryPolicy()

    assert policy.delay_for(10) == 0.0
    assert policy.exhausted(10_000) is False


def test_sender_survives_unexpected_error():
    """Test an unexpected exception is retried instead of ending the worker."""
    events = EventDispatcher()
    confirmed = []
    events.add_handler(confirmed.append)
    failures = [RuntimeError("unexpected")]

    def send(payload):
        if failures:
            raise failures.pop(0)

    sender = PersistentSender(send, events)
    sender.start()
    sender.enqueue(b"first")
    sender.enqueue(b"second")
    sender.join()
    sender.stop()

    assert [e.data for e in confirmed] == [b"first", b"second"]

"""
Tests for the message event dispatcher.
"""

from rockblockpy.core import EventDispatcher
from rockblockpy.types import EventKind, MessageEvent


def test_dispatch_to_all_handlers():
    """Test every registered handler sees the event."""
    dispatcher = EventDispatcher()
    first, second = [], []
    dispatcher.add_handler(first.append)
    dispatcher.add_handler(second.append)

    event = dispatcher.dispatch(EventKind.RECEIVED, b"data")

    assert event == MessageEvent(kind=EventKind.RECEIVED, data=b"data")
    assert first == [event]
    assert second == [event]


def test_dispatch_without_handlers():
    """Test dispatching with no handlers is harmless."""
    dispatcher = EventDispatcher()

    event = dispatcher.dispatch(EventKind.CONFIRM_SENT, bytearray(b"x"))

    assert event.data == b"x"
    assert isinstance(event.data, bytes)


def test_remove_handler():
    """Test removing handlers."""
    dispatcher = EventDispatcher()
    received = []
    dispatcher.add_handler(received.append)

    assert dispatcher.remove_handler(received.append) is True
    assert dispatcher.remove_handler(received.append) is False
    assert dispatcher.handler_count() == 0

    dispatcher.dispatch(EventKind.RECEIVED, b"data")
    assert received == []


def test_set_handler_replaces_existing():
    """Test set_handler leaves a single handler."""
    dispatcher = EventDispatcher()
    old, new = [], []
    dispatcher.add_handler(old.append)
    dispatcher.add_handler(old.append)

    dispatcher.set_handler(new.append)
    dispatcher.dispatch(EventKind.CONFIRM_SENT, b"sent")

    assert dispatcher.handler_count() == 1
    assert old == []
    assert [e.kind for e in new] == [EventKind.CONFIRM_SENT]


def test_clear_handlers():
    """Test clearing handlers."""
    dispatcher = EventDispatcher()
    dispatcher.add_handler(lambda event: None)
    dispatcher.add_handler(lambda event: None)

    dispatcher.clear_handlers()

    assert dispatcher.handler_count() == 0


def test_raising_handler_does_not_stop_others(caplog):
    """Test a failing handler is logged and the rest still run."""
    dispatcher = EventDispatcher()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    dispatcher.add_handler(broken)
    dispatcher.add_handler(received.append)

    dispatcher.dispatch(EventKind.RECEIVED, b"data")

    assert [e.data for e in received] == [b"data"]
    assert "boom" in caplog.text


def test_event_kind_values():
    """Test event kinds keep their wire-level numbering."""
    assert int(EventKind.CONFIRM_SENT) == 0
    assert int(EventKind.RECEIVED) == 1

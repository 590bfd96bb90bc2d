"""
Tests for line splitting and response waits.
"""

import threading

import pytest
from rockblockpy.core import ATProtocol, LineSplitter, ResponseLine, CaptureState
from rockblockpy.types import MatchMode
from rockblockpy.exceptions import ATTimeoutError, ATCommandError


def _line(raw: bytes) -> ResponseLine:
    return ResponseLine(raw=raw, text=raw.decode("utf-8", errors="ignore"))


@pytest.fixture
def written():
    return []


@pytest.fixture
def protocol(written):
    return ATProtocol(written.append, default_timeout=0.5, history_size=8)


@pytest.fixture
def feed(protocol):
    stop = threading.Event()

    def _feed(*lines: bytes) -> None:
        for raw in lines:
            protocol.publish(_line(raw), stop)

    return _feed


def test_splitter_terminated_lines():
    """Test CR-terminated segments are emitted in order."""
    splitter = LineSplitter()

    assert splitter.feed(b"AT\rOK\r") == [b"AT", b"OK"]
    assert splitter.flush() is None


def test_splitter_strips_line_feeds_and_skips_empty():
    """Test CR LF terminators and blank lines."""
    splitter = LineSplitter()

    assert splitter.feed(b"\r\nOK\r\n\r\n+CSQ:4\r\n") == [b"OK", b"+CSQ:4"]


def test_splitter_holds_partial_line():
    """Test a line split across reads is emitted once complete."""
    splitter = LineSplitter()

    assert splitter.feed(b"+SBDI: 1, 2") == []
    assert splitter.feed(b", 0, 0, 0, 0\rO") == [b"+SBDI: 1, 2, 0, 0, 0, 0"]
    assert splitter.feed(b"K\r") == [b"OK"]


def test_splitter_flush_returns_tail_once():
    """Test the unterminated tail is only returned at end of stream."""
    splitter = LineSplitter()

    assert splitter.feed(b"OK\rtail") == [b"OK"]
    assert splitter.flush() == b"tail"
    assert splitter.flush() is None


def test_send_appends_carriage_return(protocol, written):
    """Test commands are terminated with CR and raw data is untouched."""
    protocol.send("AT+CSQ")
    protocol.send_raw(b"\x01\x02")

    assert written == [b"AT+CSQ\r", b"\x01\x02"]


def test_wait_exact(protocol, feed):
    """Test exact matching skips other lines."""
    feed(b"AT", b"OKAY", b"OK")

    line = protocol.wait_for("OK")

    assert line.raw == b"OK"
    assert list(protocol.history) == [b"AT", b"OKAY", b"OK"]


def test_wait_prefix(protocol, feed):
    """Test prefix matching."""
    feed(b"AT+CSQ", b"+CSQ:3")

    assert protocol.wait_for("+CSQ:", MatchMode.PREFIX).raw == b"+CSQ:3"


def test_wait_suffix(protocol, feed):
    """Test suffix matching."""
    feed(b"\x00\x01", b"dataOK")

    assert protocol.wait_for(b"OK", MatchMode.SUFFIX).raw == b"dataOK"


def test_wait_timeout(protocol, feed):
    """Test a wait gives up after its bound."""
    feed(b"READY")

    with pytest.raises(ATTimeoutError):
        protocol.wait_for("OK", timeout=0.1)


def test_wait_error_line(protocol, feed):
    """Test a bare ERROR fails the wait immediately."""
    protocol.send("AT+SBDWT=hi")
    feed(b"ERROR")

    with pytest.raises(ATCommandError) as exc_info:
        protocol.wait_for("OK")

    assert exc_info.value.command == "AT+SBDWT=hi"


def test_wait_error_line_ignored_when_disabled(protocol, feed):
    """Test ERROR is ordinary content when error checks are off."""
    feed(b"ERROR", b"OK")

    assert protocol.wait_for("OK", fail_on_error=False).raw == b"OK"


def test_history_is_bounded(protocol, feed):
    """Test only the most recent lines are kept."""
    lines = [str(i).encode() for i in range(20)]
    feed(*lines)

    protocol.wait_for("19")

    assert list(protocol.history) == lines[-8:]


def test_capture_window(protocol, feed):
    """Test lines are captured only while the window is open."""
    feed(b"before", b"OK", b"AT+SBDRB", b"frame", b"OK", b"after")
    protocol.wait_for("OK")

    with protocol.capture() as lines:
        assert protocol.capture_state is CaptureState.CAPTURING
        protocol.wait_for("OK", MatchMode.SUFFIX)

    protocol.wait_for("after")

    assert lines == [b"AT+SBDRB", b"frame", b"OK"]
    assert protocol.capture_state is CaptureState.IDLE


def test_dialog_token_is_exclusive(protocol):
    """Test a second dialog waits for the first to finish."""
    order = []

    def second():
        with protocol.dialog():
            order.append("second")

    with protocol.dialog():
        assert protocol.in_dialog()
        thread = threading.Thread(target=second)
        thread.start()
        thread.join(timeout=0.2)
        order.append("first")

    thread.join(timeout=1.0)

    assert order == ["first", "second"]
    assert not protocol.in_dialog()

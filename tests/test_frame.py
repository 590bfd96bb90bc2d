"""
Tests for SBD binary framing.
"""

import pytest
from rockblockpy.parsers.frame import (
    checksum,
    encode_upload,
    encode_frame,
    decode_frame,
    reassemble,
)
from rockblockpy.exceptions import ATParseError, FrameIntegrityError


def test_checksum_known_values():
    """Test checksum is the big-endian low 16 bits of the byte sum."""
    assert checksum(b"") == b"\x00\x00"
    assert checksum(b"hello") == (532).to_bytes(2, "big")
    assert checksum(b"\x01\x02\x03") == b"\x00\x06"


def test_checksum_wraps_at_16_bits():
    """Test sums above 0xFFFF keep only the low 16 bits."""
    payload = b"\xff" * 300  # 76500 = 0x12AD4

    assert checksum(payload) == b"\x2a\xd4"


def test_checksum_is_deterministic():
    """Test recomputing the checksum reproduces the same bytes."""
    payload = bytes(range(256))

    assert checksum(payload) == checksum(bytes(payload))


def test_encode_upload():
    """Test upload layout is payload then checksum."""
    assert encode_upload(b"\x01\x02\x03") == b"\x01\x02\x03\x00\x06"


def test_encode_frame_layout():
    """Test download layout is length, payload, checksum."""
    assert encode_frame(b"hello") == b"\x00\x05hello\x02\x14"


def test_decode_frame_recovers_payload():
    """Test decoding an encoded frame returns the payload."""
    payload = b"TEST\x00\r\xff"

    assert decode_frame(encode_frame(payload)) == payload


def test_decode_frame_empty_payload():
    """Test the minimal 4-byte frame."""
    assert decode_frame(b"\x00\x00\x00\x00") == b""


def test_decode_frame_too_short():
    """Test frames under 4 bytes are rejected."""
    with pytest.raises(ATParseError):
        decode_frame(b"\x00\x01\x00")


def test_decode_frame_length_mismatch():
    """Test declared length must match the payload."""
    frame = b"\x00\x09hello\x02\x14"

    with pytest.raises(FrameIntegrityError, match="Size mismatch"):
        decode_frame(frame)


def test_decode_frame_bad_checksum():
    """Test a corrupted checksum is rejected."""
    frame = b"\x00\x05hello\x02\x15"

    with pytest.raises(FrameIntegrityError, match="Bad checksum"):
        decode_frame(frame)


def test_reassemble_rejoins_split_lines():
    """Test lines split on CR are joined back with CR."""
    frame = encode_frame(b"hello\rworld")
    lines = frame.split(b"\r") + [b"OK"]

    assert reassemble(lines) == frame


def test_reassemble_stops_at_latest_command_echo():
    """Test only lines after the most recent download echo are used."""
    lines = [
        b"AT+SBDRB",
        b"stale",
        b"OK",
        b"AT+SBDRB",
        b"\x00\x02hi\x00\xd1",
        b"OK",
    ]

    assert reassemble(lines) == b"\x00\x02hi\x00\xd1"


def test_reassemble_without_echo_uses_everything():
    """Test captures with echo disabled."""
    assert reassemble([b"\x00\x01A\x00A", b"OK"]) == b"\x00\x01A\x00A"


@pytest.mark.parametrize("lines", [
    [],
    [b"AT+SBDRB"],
    [b"AT+SBDRB", b"K"],
])
def test_reassemble_invalid_capture(lines):
    """Test captures without a terminated frame are rejected."""
    with pytest.raises(ATParseError):
        reassemble(lines)

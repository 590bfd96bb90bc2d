"""
Binary framing for SBD message transfer.

Implements the length/checksum framing used by AT+SBDWB uploads and
AT+SBDRB downloads:

    upload:   [payload][checksum:2 BE]
    download: [length:2 BE][payload][checksum:2 BE]

The checksum is the low 16 bits of the sum of the payload bytes.
"""

from typing import Sequence

from ..exceptions import ATParseError, FrameIntegrityError


DOWNLOAD_COMMAND = b"AT+SBDRB"

# Byte the line reader splits on; binary content may contain it
LINE_DELIMITER = b"\r"


def checksum(payload: bytes) -> bytes:
    """
    Compute the 2-byte SBD checksum of a payload.

    Args:
        payload: Message bytes

    Returns:
        Checksum, big-endian
    """
    return (sum(payload) & 0xFFFF).to_bytes(2, "big")


def encode_upload(payload: bytes) -> bytes:
    """Payload followed by its checksum, as written after READY."""
    return bytes(payload) + checksum(payload)


def encode_frame(payload: bytes) -> bytes:
    """Payload in the download layout: length, payload, checksum."""
    if len(payload) > 0xFFFF:
        raise ValueError(f"Payload too long for frame: {len(payload)} bytes")
    return len(payload).to_bytes(2, "big") + bytes(payload) + checksum(payload)


def decode_frame(data: bytes) -> bytes:
    """
    Validate a downloaded frame and extract its payload.

    Args:
        data: Raw frame bytes

    Returns:
        Message payload

    Raises:
        ATParseError: If frame is shorter than length prefix plus checksum
        FrameIntegrityError: If declared length or checksum do not match
    """
    if len(data) < 4:
        raise ATParseError(
            f"Frame too short: {len(data)} bytes",
            command=DOWNLOAD_COMMAND.decode()
        )

    declared = int.from_bytes(data[:2], "big")
    received_checksum = data[-2:]
    payload = data[2:-2]

    if declared != len(payload):
        raise FrameIntegrityError(
            f"Size mismatch: declared={declared}, actual={len(payload)}",
            command=DOWNLOAD_COMMAND.decode()
        )

    expected_checksum = checksum(payload)
    if received_checksum != expected_checksum:
        raise FrameIntegrityError(
            f"Bad checksum: received={received_checksum.hex()}, "
            f"computed={expected_checksum.hex()}",
            command=DOWNLOAD_COMMAND.decode()
        )

    return payload


def reassemble(lines: Sequence[bytes], marker: bytes = DOWNLOAD_COMMAND) -> bytes:
    """
    Rebuild a downloaded frame from the lines the reader split it into.

    Only lines after the most recent echo of ``marker`` are used. The last
    line is the terminating OK and is dropped; the rest are rejoined with
    the line delimiter the reader consumed.

    Args:
        lines: Captured response lines, oldest first
        marker: Download command echo

    Returns:
        Raw frame bytes

    Raises:
        ATParseError: If the capture does not contain a terminated frame
    """
    collected: list[bytes] = []
    for line in reversed(lines):
        if line == marker:
            break
        collected.append(line)
    collected.reverse()

    if not collected or len(collected[-1]) < 2:
        raise ATParseError(
            "Invalid download response format",
            command=marker.decode(),
            response=[repr(line) for line in collected]
        )

    return LINE_DELIMITER.join(collected[:-1])

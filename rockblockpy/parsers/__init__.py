"""
Response parsers and binary framing.

Provides type-safe parsing of modem responses into structured data.
"""

from .base import ResponseParser, IntValueParser, CommaSeparatedParser
from .status import SessionStatusParser, SignalQualityParser, SystemTimeParser
from .frame import checksum, encode_upload, encode_frame, decode_frame, reassemble

__all__ = [
    "ResponseParser",
    "IntValueParser",
    "CommaSeparatedParser",
    "SessionStatusParser",
    "SignalQualityParser",
    "SystemTimeParser",
    "checksum",
    "encode_upload",
    "encode_frame",
    "decode_frame",
    "reassemble",
]

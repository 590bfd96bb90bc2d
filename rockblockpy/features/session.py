"""
SBD session manager.

Handles the mailbox dialogs: staging MO messages, initiating sessions and
downloading MT messages.
"""

import logging
from typing import TYPE_CHECKING

from ..types import (
    EventKind,
    MatchMode,
    SessionStatus,
    WriteResult,
    MAX_BINARY_LENGTH,
    MAX_TEXT_LENGTH,
)
from ..parsers.frame import DOWNLOAD_COMMAND, decode_frame, encode_upload, reassemble
from ..exceptions import (
    ATParseError,
    BinaryWriteError,
    MailboxEmptyError,
    RockBLOCKError,
    SessionError,
)

if TYPE_CHECKING:
    from ..core import ModemCore

logger = logging.getLogger(__name__)

_WRITE_RESULT_LINES = {str(int(code)).encode() for code in WriteResult}

_WRITE_RESULT_MESSAGES = {
    WriteResult.TIMEOUT: "Modem timed out waiting for the binary message",
    WriteResult.BAD_CHECKSUM: "Modem reported a checksum mismatch",
    WriteResult.BAD_SIZE: "Modem reported an invalid message size",
}


class SessionManager:
    """
    Manages SBD mailbox sessions.

    Every public method holds the dialog token for its whole duration, so
    sessions never overlap with each other or with network queries.
    """

    def __init__(self, modem_core: "ModemCore") -> None:
        """
        Initialize session manager.

        Args:
            modem_core: ModemCore instance for AT command execution
        """
        self.modem = modem_core
        self.protocol = modem_core.protocol

        logger.debug("Initialized SessionManager")

    def send_text(self, text: str) -> SessionStatus:
        """
        Send a text message.

        Args:
            text: Message text (up to 120 bytes UTF-8 encoded)

        Returns:
            SessionStatus reported for the session

        Raises:
            ValueError: If the text is too long or contains a line break
            SessionError: If the modem could not deliver the message
            ATTimeoutError: If a response does not arrive in time

        Example:

        .. code-block:: python

            status = modem.session.send_text("Hello from orbit")
            print(f"Sent as MOMSN {status.momsn}")
        """
        size = len(text.encode("utf-8"))
        if size > MAX_TEXT_LENGTH:
            raise ValueError(f"Text message too long: {size} > {MAX_TEXT_LENGTH} bytes")
        if "\r" in text or "\n" in text:
            raise ValueError("Text message must not contain line breaks")

        logger.info(f"Sending text message ({len(text)} chars)")

        with self.protocol.dialog():
            self._clear_buffers()

            self.protocol.send(f"AT+SBDWT={text}")
            self.protocol.wait_for("OK")

            return self._transmit()

    def send_binary(self, payload: bytes) -> SessionStatus:
        """
        Send a binary message.

        Args:
            payload: Message bytes (1 to 340 bytes)

        Returns:
            SessionStatus reported for the session

        Raises:
            ValueError: If the payload size is out of range
            BinaryWriteError: If the modem rejected the upload
            SessionError: If the modem could not deliver the message
            ATTimeoutError: If a response does not arrive in time

        Example:

        .. code-block:: python

            modem.session.send_binary(b"\\x01\\x02\\x03")
        """
        validate_binary(payload)
        payload = bytes(payload)

        logger.info(f"Sending binary message ({len(payload)} bytes)")

        with self.protocol.dialog():
            self._clear_buffers()

            self.protocol.send(f"AT+SBDWB={len(payload)}")
            self.protocol.wait_for("READY")

            # Binary transfer: payload and checksum, no terminator
            self.protocol.send_raw(encode_upload(payload))

            result = self.protocol.wait_until(
                lambda raw: raw in _WRITE_RESULT_LINES,
                "binary write result"
            )
            code = WriteResult(int(result.text))
            if code is not WriteResult.ACCEPTED:
                logger.error(f"Binary upload rejected: {code.name}")
                raise BinaryWriteError(
                    _WRITE_RESULT_MESSAGES[code],
                    code=int(code),
                    command="AT+SBDWB",
                    response=[result.text]
                )

            self.protocol.wait_for("OK")

            return self._transmit()

    def check_mailbox(self) -> SessionStatus:
        """
        Run a session without an MO message to pick up waiting MT messages.

        A retrieved message is delivered as a RECEIVED event.

        Returns:
            SessionStatus reported for the session

        Raises:
            FrameIntegrityError: If the downloaded message is corrupt
        """
        logger.info("Checking mailbox")

        with self.protocol.dialog():
            self._clear_buffers()
            status = self._initiate_session()

            if status.mt_waiting:
                self._download()
            else:
                logger.info("No MT message waiting")

            return status

    def download_message(self) -> bytes:
        """
        Download the MT message reported by the last session.

        Returns:
            Message payload

        Raises:
            MailboxEmptyError: If the last session reported no waiting message
            FrameIntegrityError: If length or checksum do not match
            ATParseError: If the download response is malformed
        """
        with self.protocol.dialog():
            status = self.modem.session_status
            if status is None or not status.mt_waiting:
                raise MailboxEmptyError("No messages waiting", command=DOWNLOAD_COMMAND.decode())

            return self._download()

    def _clear_buffers(self) -> None:
        self.protocol.send("AT+SBDD0")
        self.protocol.wait_for("OK")

    def _initiate_session(self) -> SessionStatus:
        """Send AT+SBDI and return the status line it produced."""
        self.protocol.send("AT+SBDI")

        line = self.protocol.wait_for("+SBDI:", MatchMode.PREFIX)
        self.protocol.wait_for("OK")

        if not isinstance(line.parsed, SessionStatus):
            raise ATParseError(
                f"Malformed session status: {line.text}",
                command="AT+SBDI",
                response=[line.text]
            )

        status = line.parsed
        logger.info(
            f"Session status: MO={status.mo_status} MOMSN={status.momsn} "
            f"MT={status.mt_status} MTMSN={status.mtmsn} queued={status.mt_queued}"
        )
        return status

    def _transmit(self) -> SessionStatus:
        """Initiate a session for the staged message and pull any MT message."""
        status = self._initiate_session()

        if not status.mo_success:
            raise SessionError(f"Send message error: {status}", status=status, command="AT+SBDI")

        if status.mt_waiting:
            try:
                self._download()
            except RockBLOCKError as e:
                logger.warning(f"MT download after send failed: {e}")

        return status

    def _download(self) -> bytes:
        """Download, validate and dispatch the waiting MT message."""
        logger.info("Downloading MT message")

        with self.protocol.capture() as lines:
            self.protocol.send(DOWNLOAD_COMMAND.decode())
            # Transfer ends with OK; binary content is not checked for ERROR
            self.protocol.wait_for("OK", MatchMode.SUFFIX, fail_on_error=False)

        payload = decode_frame(reassemble(lines))
        logger.info(f"Received MT message ({len(payload)} bytes)")

        self.modem.events.dispatch(EventKind.RECEIVED, payload)
        return payload


def validate_binary(payload: bytes) -> None:
    """
    Check a binary MO payload against the modem's size limits.

    Raises:
        ValueError: If the payload is empty or longer than 340 bytes
    """
    if not 1 <= len(payload) <= MAX_BINARY_LENGTH:
        raise ValueError(
            f"Binary message must be 1..{MAX_BINARY_LENGTH} bytes, got {len(payload)}"
        )

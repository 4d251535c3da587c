"""Decoding of fetched messages into MIME parts.

Uses Python's email.parser with the compat32 policy, which copes with
real-world malformed mail better than the stricter "email" policy.
Header fields are parsed one by one and a field that fails to parse is
simply left out. A broken MIME structure stops the run.
"""

import io
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from email import errors, policy
from email.header import decode_header, make_header
from email.message import Message
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime
from typing import BinaryIO

from imapattach.download.persist import AttachmentSaver
from imapattach.errors import (
    ImapAttachError,
    MessageError,
    MessageStructureError,
    MissingBodyError,
)
from imapattach.imap.models import MessageEnvelope

# Defects that mean the multipart tree itself can't be trusted
STRUCTURAL_DEFECTS = (
    errors.NoBoundaryInMultipartDefect,
    errors.StartBoundaryNotFoundDefect,
    errors.MultipartInvariantViolationDefect,
)

# Exceptions raised by the header helpers on malformed values
HEADER_ERRORS = (ValueError, TypeError, LookupError, errors.HeaderParseError)


@dataclass
class Part:
    """A single leaf of a message's MIME tree.

    Attributes:
        filename: Attachment filename. None for parts that aren't
                  attachments, "" for attachments without a name.
        content_type: MIME type (e.g., "application/pdf").
    """

    filename: str | None
    content_type: str
    _source: Message = field(repr=False)

    @property
    def is_attachment(self) -> bool:
        return self.filename is not None

    def open(self) -> BinaryIO:
        """Open the decoded content (base64/quoted-printable removed)."""
        return io.BytesIO(self._source.get_payload(decode=True) or b"")

    @classmethod
    def from_message(cls, part: Message) -> "Part":
        filename = part.get_filename()
        if filename is not None:
            try:
                filename = _decode_words(filename)
            except HEADER_ERRORS:
                pass  # keep the raw name
        elif part.get_content_disposition() == "attachment":
            filename = ""
        return cls(filename, part.get_content_type(), part)


@dataclass
class DecodedMessage:
    """Header fields and MIME parts of one message.

    Header fields are None when missing or unparseable.
    """

    date: datetime | None = None
    from_addrs: list[str] | None = None
    to_addrs: list[str] | None = None
    subject: str | None = None
    _message: Message | None = field(default=None, repr=False)

    def parts(self) -> Iterator[Part]:
        """Walk the MIME tree, yielding leaf parts in order.

        Raises:
            MessageStructureError: When a malformed multipart is reached.
        """
        if self._message is None:
            return

        for part in self._message.walk():
            for defect in part.defects:
                if isinstance(defect, STRUCTURAL_DEFECTS):
                    raise MessageStructureError(
                        f"malformed MIME structure: {type(defect).__name__}"
                    )
            if part.is_multipart():
                continue
            yield Part.from_message(part)


class MessageDecoder:
    """Decodes fetched messages and saves their attachments.

    Example:
        decoder = MessageDecoder(AttachmentSaver(directory, r"\\.pdf$"))
        saved, skipped = decoder.process(envelope)
    """

    def __init__(self, saver: AttachmentSaver, logger: logging.Logger | None = None):
        """Initialize the decoder.

        Args:
            saver: Receives every attachment part.
            logger: Logger for header diagnostics (defaults to module logger).
        """
        self._saver = saver
        self._log = logger or logging.getLogger(__name__)
        self._parser = BytesParser(policy=policy.compat32)

    def decode(self, envelope: MessageEnvelope) -> DecodedMessage:
        """Parse a fetched message.

        Args:
            envelope: The fetched message.

        Returns:
            DecodedMessage with header fields and lazy parts.

        Raises:
            MissingBodyError: If the server returned no body.
            MessageStructureError: If the body can't be parsed.
        """
        if envelope.body is None:
            raise MissingBodyError("server didn't return the message body")

        try:
            msg = self._parser.parsebytes(envelope.body)
        except (TypeError, ValueError, errors.MessageError) as e:
            raise MessageStructureError(f"failed to parse message: {e}") from e

        return DecodedMessage(
            date=_parse_field(msg, "Date", parsedate_to_datetime),
            from_addrs=_parse_field(msg, "From", _parse_address_list),
            to_addrs=_parse_field(msg, "To", _parse_address_list),
            subject=_parse_field(msg, "Subject", _decode_words),
            _message=msg,
        )

    def process(self, envelope: MessageEnvelope) -> tuple[int, int]:
        """Decode a message and hand each attachment to the saver.

        Args:
            envelope: The fetched message.

        Returns:
            Tuple of (attachments saved, attachments skipped).

        Raises:
            MessageError: Wrapping any decode or save failure.
        """
        saved = skipped = 0
        try:
            decoded = self.decode(envelope)
            self._log_header(decoded)

            for part in decoded.parts():
                if not part.is_attachment:
                    continue
                with part.open() as content:
                    path = self._saver.save(part.filename, content, envelope.date)
                if path is None:
                    skipped += 1
                else:
                    saved += 1
        except ImapAttachError as e:
            raise MessageError(envelope.seq, e) from e

        return saved, skipped

    def _log_header(self, decoded: DecodedMessage) -> None:
        if not self._log.isEnabledFor(logging.DEBUG):
            return
        if decoded.date is not None:
            self._log.debug("Date: %s", decoded.date)
        if decoded.from_addrs is not None:
            self._log.debug("From: %s", ", ".join(decoded.from_addrs))
        if decoded.to_addrs is not None:
            self._log.debug("To: %s", ", ".join(decoded.to_addrs))
        if decoded.subject is not None:
            self._log.debug("Subject: %s", decoded.subject)


def _parse_field(msg: Message, name: str, parse):
    """Parse one header field, returning None if missing or malformed."""
    value = msg.get(name)
    if value is None:
        return None
    try:
        return parse(str(value))
    except HEADER_ERRORS:
        return None


def _decode_words(value: str) -> str:
    """Decode RFC 2047 encoded words (=?utf-8?b?...?=)."""
    return str(make_header(decode_header(value)))


def _parse_address_list(value: str) -> list[str]:
    """Split an address header into "Name <email>" strings."""
    addresses = []
    for name, addr in getaddresses([value]):
        if not addr:
            continue
        addresses.append(f"{name} <{addr}>" if name else addr)
    return addresses

"""Data models for messages fetched from the IMAP server."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class MessageEnvelope:
    """A message as returned by a page FETCH.

    Attributes:
        seq: Sequence number of the message in the selected mailbox.
        date: Delivery date from the ENVELOPE, None if the server sent none.
        body: Raw bytes of the requested body section, None if missing.
    """

    seq: int
    date: datetime | None
    body: bytes | None

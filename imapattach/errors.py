"""Exception types raised while downloading attachments.

Every fatal condition is an ImapAttachError. Errors raised deep in the
pipeline are wrapped with context (message sequence number, page range)
as they unwind, so the message printed at the top reads like:

    page 101-200: message 137: attachment 'report.pdf': [Errno 28] ...
"""


class ImapAttachError(Exception):
    """Base class for all imapattach errors."""


class ConfigError(ImapAttachError):
    """Configuration is missing, malformed, or unusable."""


class SessionError(ImapAttachError):
    """Connecting, logging in, or selecting the mailbox failed."""


class FetchError(ImapAttachError):
    """The FETCH command for a page reported failure."""


class MissingBodyError(ImapAttachError):
    """The server returned no content for the requested body section."""


class MessageStructureError(ImapAttachError):
    """A message's MIME structure could not be read."""


class AttachmentError(ImapAttachError):
    """An attachment could not be written to disk."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        super().__init__(f"attachment {filename!r}: {reason}")


class MessageError(ImapAttachError):
    """Processing a single message failed."""

    def __init__(self, seq: int, cause: Exception):
        self.seq = seq
        super().__init__(f"message {seq}: {cause}")


class PageError(ImapAttachError):
    """Processing a page of messages failed."""

    def __init__(self, page, cause: Exception):
        self.page = page
        super().__init__(f"page {page}: {cause}")

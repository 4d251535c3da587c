"""Download engine for attachment extraction.

Walks a mailbox page by page: each page is fetched in one FETCH command
and its messages are decoded and saved as the session delivers them.
Pages are processed strictly one after another and the first failure
stops the run.
"""

import logging
from dataclasses import dataclass

from imapattach.download.decoder import MessageDecoder
from imapattach.download.pages import PageRange, page_ranges
from imapattach.download.stream import PageFetchStream
from imapattach.errors import ImapAttachError, PageError


@dataclass
class DownloadResult:
    """Counts of what a download run processed."""

    pages: int = 0
    messages: int = 0
    saved: int = 0
    skipped: int = 0


class DownloadEngine:
    """Engine for downloading attachments from a mailbox.

    Example:
        with ImapSession(host, port, username, password) as session:
            saver = AttachmentSaver(directory, r"\\.pdf$")
            engine = DownloadEngine(session, MessageDecoder(saver), page_size=100)
            result = engine.run("INBOX")
    """

    def __init__(
        self,
        session,
        decoder: MessageDecoder,
        page_size: int,
        logger: logging.Logger | None = None,
    ):
        """Initialize download engine.

        Args:
            session: Logged-in session with select() and fetch().
            decoder: Decodes messages and saves their attachments.
            page_size: Maximum number of messages per FETCH command.
            logger: Logger for progress lines (defaults to module logger).
        """
        if page_size <= 0:
            raise ValueError(f"page size must be positive, got {page_size}")
        self._session = session
        self._decoder = decoder
        self._page_size = page_size
        self._log = logger or logging.getLogger(__name__)

    def run(self, mailbox: str = "INBOX") -> DownloadResult:
        """Download matching attachments from every message in a mailbox.

        Args:
            mailbox: Name of the mailbox to walk.

        Returns:
            DownloadResult with page, message and attachment counts.

        Raises:
            SessionError: If the mailbox can't be selected.
            PageError: On the first page that fails, with the page range.
        """
        count = self._session.select(mailbox)
        result = DownloadResult()

        for page in page_ranges(count, self._page_size):
            self._log.info("processing %d-%d out of %d", page.first, page.last, count)
            try:
                self.download_page(page, result)
            except ImapAttachError as e:
                raise PageError(page, e) from e
            result.pages += 1

        return result

    def download_page(self, page: PageRange, result: DownloadResult) -> None:
        """Fetch one page and process each of its messages.

        Args:
            page: Range of sequence numbers to process.
            result: Counters updated as messages are processed.

        Raises:
            MessageError: If a message can't be decoded or saved.
            FetchError: If the FETCH command failed, even when some
                        messages were already processed.
        """
        with PageFetchStream(self._session, page, logger=self._log) as stream:
            for envelope in stream:
                saved, skipped = self._decoder.process(envelope)
                result.messages += 1
                result.saved += saved
                result.skipped += skipped

            stream.wait()

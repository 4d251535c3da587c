"""Streaming of one page of fetched messages.

A background thread runs the FETCH command and pushes each message onto a
queue while the caller processes the messages that already arrived. The
queue holds a whole page, so the fetch never waits on the caller.

The FETCH command's own result is only known once every message has been
delivered, so it is read from a separate queue after the message queue
has been drained:

    with PageFetchStream(session, page) as stream:
        for envelope in stream:
            decoder.process(envelope)
        stream.wait()
"""

import logging
import queue
import threading
from collections.abc import Iterator

from imapattach.download.pages import PageRange
from imapattach.errors import FetchError
from imapattach.imap.models import MessageEnvelope

# Marks the end of the page on the message queue
_END = object()
# FETCH result not read yet
_PENDING = object()


class PageFetchStream:
    """Messages of one page, fetched concurrently with their processing.

    The stream can be iterated once. Messages come in the order the
    server returned them.
    """

    def __init__(self, session, page: PageRange, logger: logging.Logger | None = None):
        """Initialize the stream without starting the fetch.

        Args:
            session: Object with fetch(first, last, deliver), normally an
                     ImapSession.
            page: Range of sequence numbers to fetch.
            logger: Logger for fetch diagnostics (defaults to module logger).
        """
        self._session = session
        self._page = page
        self._log = logger or logging.getLogger(__name__)
        # One slot per message plus the end marker
        self._messages: queue.Queue = queue.Queue(maxsize=page.size + 1)
        self._done: queue.Queue = queue.Queue(maxsize=1)
        self._thread: threading.Thread | None = None
        self._drained = False
        self._status: Exception | None | object = _PENDING

    def start(self) -> None:
        """Issue the FETCH command in a background thread."""
        if self._thread is not None:
            raise RuntimeError(f"fetch for page {self._page} already started")
        self._thread = threading.Thread(
            target=self._produce,
            name=f"fetch-{self._page}",
            daemon=True,
        )
        self._thread.start()

    def _produce(self) -> None:
        error: Exception | None = None
        try:
            self._session.fetch(self._page.first, self._page.last, self._deliver)
        except Exception as e:  # reported to the consumer through wait()
            error = e
        finally:
            self._messages.put(_END)
            self._done.put(error)

    def _deliver(self, envelope: MessageEnvelope) -> None:
        # Only messages of this page fit in the queue
        if not self._page.first <= envelope.seq <= self._page.last:
            self._log.warning(
                "Ignoring message %d delivered outside page %s", envelope.seq, self._page
            )
            return
        self._messages.put(envelope)

    def __iter__(self) -> Iterator[MessageEnvelope]:
        if self._thread is None:
            raise RuntimeError(f"fetch for page {self._page} not started")
        if self._drained:
            raise RuntimeError(f"messages of page {self._page} already consumed")

        while True:
            item = self._messages.get()
            if item is _END:
                self._drained = True
                return
            yield item

    def wait(self) -> None:
        """Report the FETCH command's result.

        Must be called after iterating every message of the page.

        Raises:
            FetchError: If the FETCH command failed.
            RuntimeError: If messages are still pending.
        """
        if not self._drained:
            raise RuntimeError(
                f"page {self._page} must be fully consumed before its fetch status"
            )

        if self._status is _PENDING:
            self._status = self._done.get()
        error = self._status
        if error is not None:
            raise FetchError(
                f"failed to fetch messages in range {self._page.first} - "
                f"{self._page.last}: {error}"
            ) from error

    def close(self) -> None:
        """Wait for the fetch thread to finish."""
        if self._thread is not None and self._thread.is_alive():
            self._log.debug("Waiting for fetch of page %s to finish", self._page)
            self._thread.join()

    def __enter__(self) -> "PageFetchStream":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

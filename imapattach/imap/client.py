"""IMAP client wrapper.

Wraps imapclient.IMAPClient with the handful of operations the download
pipeline needs: login/logout bracketing, selecting a mailbox, and fetching
a range of messages by sequence number.

IMAPClient.fetch returns only once the whole FETCH response has been
parsed, so a page is held in memory and its messages are delivered after
the command completes. Processing does not overlap the network transfer
with this session, even though PageFetchStream runs the fetch in its own
thread.
"""

import logging
from collections.abc import Callable

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from imapattach.errors import SessionError
from imapattach.imap.models import MessageEnvelope

# ENVELOPE for the delivery date, the whole message as the body section.
# PEEK leaves the \Seen flag untouched.
FETCH_ITEMS = [b"ENVELOPE", b"BODY.PEEK[]"]
BODY_KEY = b"BODY[]"

# Callback receiving each fetched message
DeliverCallback = Callable[[MessageEnvelope], None]


class ImapSession:
    """A logged-in IMAP session.

    Used as a context manager: entering connects and logs in, leaving
    logs out. Messages are addressed by sequence number, not UID.

    Example:
        with ImapSession("imap.example.com", 993, "me", "secret") as session:
            count = session.select("INBOX")
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        ssl: bool = True,
        logger: logging.Logger | None = None,
    ):
        """Initialize the session without connecting.

        Args:
            host: IMAP server hostname.
            port: IMAP server port.
            username: Login name.
            password: Login password.
            ssl: Connect over TLS.
            logger: Logger for connection progress (defaults to module logger).
        """
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._ssl = ssl
        self._log = logger or logging.getLogger(__name__)
        self._client: IMAPClient | None = None

    def __enter__(self) -> "ImapSession":
        self._log.info("Connecting to %s:%d", self._host, self._port)
        try:
            self._client = IMAPClient(
                self._host, port=self._port, ssl=self._ssl, use_uid=False
            )
        except (IMAPClientError, OSError) as e:
            raise SessionError(
                f"failed to connect to {self._host}:{self._port}: {e}"
            ) from e
        self._log.info("Connected")

        self._log.info("Logging into %s", self._username)
        try:
            self._client.login(self._username, self._password)
        except (IMAPClientError, OSError) as e:
            self._disconnect()
            raise SessionError(f"failed to log in as {self._username}: {e}") from e
        self._log.info("Logged in")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._client is None:
            return
        try:
            self._client.logout()
            self._log.info("Logged out")
        except (IMAPClientError, OSError):
            # Don't mask the run's own outcome with a logout failure
            self._log.exception("Failed to log out")
        finally:
            self._client = None

    def _disconnect(self) -> None:
        """Drop the connection after a failed login."""
        client, self._client = self._client, None
        try:
            client.shutdown()
        except OSError:
            self._log.debug("Error closing connection", exc_info=True)

    @property
    def client(self) -> IMAPClient:
        """The underlying IMAPClient. Only valid inside the context."""
        if self._client is None:
            raise SessionError("IMAP session is not open")
        return self._client

    def select(self, mailbox: str) -> int:
        """Select a mailbox read-only.

        Args:
            mailbox: Mailbox name (e.g., "INBOX").

        Returns:
            Number of messages in the mailbox.
        """
        try:
            response = self.client.select_folder(mailbox, readonly=True)
        except IMAPClientError as e:
            raise SessionError(f"failed to select mailbox {mailbox}: {e}") from e
        return int(response.get(b"EXISTS", 0))

    def fetch(self, first: int, last: int, deliver: DeliverCallback) -> None:
        """Fetch messages first..last and deliver each one.

        Messages are delivered in the order the server returned them,
        which is not guaranteed to be ascending. Untagged FETCH responses
        for messages outside first..last (unsolicited flag updates) are
        ignored.

        Args:
            first: First sequence number (inclusive).
            last: Last sequence number (inclusive).
            deliver: Called once per fetched message.

        Raises:
            IMAPClientError: If the FETCH command fails.
        """
        response = self.client.fetch(f"{first}:{last}", FETCH_ITEMS)

        for seq, data in response.items():
            if not first <= seq <= last:
                self._log.debug("Ignoring unsolicited FETCH response for message %d", seq)
                continue
            envelope = data.get(b"ENVELOPE")
            deliver(
                MessageEnvelope(
                    seq=seq,
                    date=envelope.date if envelope is not None else None,
                    body=data.get(BODY_KEY),
                )
            )

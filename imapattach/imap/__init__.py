"""IMAP session handling.

Usage:
    from imapattach.imap import ImapSession

    with ImapSession(host, 993, username, password) as session:
        count = session.select("INBOX")
        session.fetch(1, min(count, 100), print)
"""

from .client import ImapSession
from .models import MessageEnvelope

__all__ = ["ImapSession", "MessageEnvelope"]

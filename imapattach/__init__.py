"""Download matching attachments from an IMAP mailbox."""

__version__ = "0.1.0"

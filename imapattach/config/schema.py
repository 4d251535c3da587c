"""Configuration schema definitions.

The TypedDicts match the structure of config.toml. Settings is the
validated, read-only form handed to the download pipeline.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TypedDict


class ConnectConfig(TypedDict, total=False):
    """IMAP server endpoint.

    Attributes:
        host: Server hostname.
        port: Server port (993 for IMAPS).
        ssl: Connect over TLS.
    """

    host: str
    port: int
    ssl: bool


class CredentialsConfig(TypedDict, total=False):
    """Login credentials.

    Attributes:
        username: Login name, usually the email address.
        password: Password (prefer the IMAPATTACH_PASSWORD env var).
    """

    username: str
    password: str


class DownloadConfig(TypedDict, total=False):
    """What to download and where.

    Attributes:
        attachments_directory: Directory attachments are written to.
        page_size: Number of messages fetched per FETCH command.
        pattern: Regular expression matched against attachment filenames.
        mailbox: Mailbox to walk (defaults to INBOX).
    """

    attachments_directory: str
    page_size: int
    pattern: str
    mailbox: str


class ImapAttachConfig(TypedDict, total=False):
    """Root configuration structure."""

    connect: ConnectConfig
    credentials: CredentialsConfig
    download: DownloadConfig
    debug: bool


@dataclass(frozen=True)
class Settings:
    """Validated configuration for one run."""

    host: str
    port: int
    username: str
    password: str
    attachments_directory: Path
    page_size: int
    pattern: re.Pattern
    mailbox: str = "INBOX"
    ssl: bool = True
    debug: bool = False

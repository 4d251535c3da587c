"""Filtering and saving of attachment files."""

import logging
import os
import re
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

from imapattach.errors import AttachmentError, ConfigError

# Characters that would let a filename reach outside the target directory
PATH_SEPARATORS = ("/", "\\")

# Read size for streaming attachment content to disk
COPY_CHUNK_SIZE = 64 * 1024


def sanitize_filename(filename: str) -> str:
    """Replace path separators so the name stays inside one directory."""
    for sep in PATH_SEPARATORS:
        filename = filename.replace(sep, "_")
    return filename


def placeholder_filename() -> str:
    """Generate a unique name for attachments that arrive without one."""
    return f"unknown-file-{uuid.uuid4()}"


class AttachmentSaver:
    """Writes attachments whose filename matches a pattern.

    The pattern is searched for anywhere in the raw filename, before
    sanitizing. Files with the same name are overwritten.

    Example:
        saver = AttachmentSaver(Path("~/Attachments"), r"\\.pdf$")
        with part.open() as content:
            path = saver.save(part.filename, content, envelope.date)
    """

    def __init__(
        self,
        directory: Path,
        pattern: str | re.Pattern,
        logger: logging.Logger | None = None,
    ):
        """Initialize the saver.

        Args:
            directory: Existing directory to write attachments into.
            pattern: Regular expression matched against filenames.
            logger: Logger for save confirmations (defaults to module logger).

        Raises:
            ConfigError: If pattern is not a valid regular expression.
        """
        self._directory = Path(directory).expanduser()
        self._log = logger or logging.getLogger(__name__)

        if isinstance(pattern, re.Pattern):
            self._pattern = pattern
        else:
            try:
                self._pattern = re.compile(pattern)
            except re.error as e:
                raise ConfigError(f"invalid filename pattern {pattern!r}: {e}") from e

    def matches(self, filename: str) -> bool:
        """Check whether an attachment with this filename should be saved."""
        return self._pattern.search(filename) is not None

    def save(
        self,
        filename: str,
        content: BinaryIO,
        delivered: datetime | None = None,
    ) -> Path | None:
        """Save an attachment if its filename matches.

        Args:
            filename: Attachment filename as found in the message.
            content: Binary stream with the decoded attachment bytes.
            delivered: Delivery date of the owning message, used as the
                       file's modification time when possible.

        Returns:
            Path of the written file, or None if the filename didn't match.

        Raises:
            AttachmentError: If the file cannot be created or written.
        """
        if not self.matches(filename):
            return None

        name = sanitize_filename(filename)
        if not name:
            # Seen with malformed messages
            name = placeholder_filename()

        path = self._directory / name
        try:
            with open(path, "wb") as f:
                shutil.copyfileobj(content, f, COPY_CHUNK_SIZE)
        except OSError as e:
            raise AttachmentError(name, f"failed to save {path}: {e}") from e

        self._set_times(path, delivered)

        self._log.info("Saved %s", name)
        return path

    def _set_times(self, path: Path, delivered: datetime | None) -> None:
        """Set access and modification time, logging instead of failing."""
        if delivered is None:
            self._log.warning("No delivery date for %s, keeping current time", path)
            return

        try:
            timestamp = delivered.timestamp()
            os.utime(path, (timestamp, timestamp))
        except (OSError, OverflowError, ValueError) as e:
            self._log.warning("Unable to update time on file %s: %s", path, e)

"""Tests for attachment filtering and saving."""

import io
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from imapattach.download.persist import (
    COPY_CHUNK_SIZE,
    AttachmentSaver,
    sanitize_filename,
)
from imapattach.errors import AttachmentError, ConfigError

DELIVERED = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


class ChunkRecorder:
    """Readable stream that records the size of every read."""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)
        self.read_sizes: list[int] = []

    def read(self, size: int = -1) -> bytes:
        self.read_sizes.append(size)
        return self._buffer.read(size)


@pytest.fixture
def directory(tmp_path: Path) -> Path:
    """Create an empty attachments directory."""
    directory = tmp_path / "attachments"
    directory.mkdir()
    return directory


@pytest.fixture
def saver(directory: Path) -> AttachmentSaver:
    """Create a saver accepting every filename."""
    return AttachmentSaver(directory, "")


class TestSanitizeFilename:
    """Tests for sanitize_filename()."""

    def test_replaces_slashes(self):
        assert sanitize_filename("a/b/c.pdf") == "a_b_c.pdf"

    def test_replaces_backslashes(self):
        assert sanitize_filename("a\\b.pdf") == "a_b.pdf"

    def test_leaves_plain_names(self):
        assert sanitize_filename("report.pdf") == "report.pdf"


class TestAttachmentSaver:
    """Tests for AttachmentSaver class."""

    def test_saves_matching_attachment(self, directory: Path):
        """save() writes a file whose name matches the pattern."""
        saver = AttachmentSaver(directory, r"\.pdf$")

        path = saver.save("report.pdf", io.BytesIO(b"%PDF-1.4"), DELIVERED)

        assert path == directory / "report.pdf"
        assert path.read_bytes() == b"%PDF-1.4"

    def test_skips_non_matching_attachment(self, directory: Path):
        """save() returns None and writes nothing for other names."""
        saver = AttachmentSaver(directory, r"\.pdf$")

        path = saver.save("image.png", io.BytesIO(b"png"), DELIVERED)

        assert path is None
        assert list(directory.iterdir()) == []

    def test_pattern_matches_anywhere_in_name(self, directory: Path):
        """The pattern is searched for, not anchored at the start."""
        saver = AttachmentSaver(directory, "invoice")

        assert saver.save("2024-invoice-7.pdf", io.BytesIO(b"x")) is not None

    def test_matches_raw_name_before_sanitizing(self, directory: Path):
        """Path separators are still present when the pattern is applied."""
        saver = AttachmentSaver(directory, "^reports/")

        path = saver.save("reports/q1.pdf", io.BytesIO(b"q1"), DELIVERED)

        assert path == directory / "reports_q1.pdf"

    def test_sanitized_name_is_not_matched(self, directory: Path):
        """An underscore introduced by sanitizing doesn't count as a match."""
        saver = AttachmentSaver(directory, "a_b")

        assert saver.save("a/b", io.BytesIO(b"x")) is None
        assert list(directory.iterdir()) == []

    def test_path_traversal_stays_in_directory(
        self, saver: AttachmentSaver, directory: Path, tmp_path: Path
    ):
        """Names with ../ are flattened into the attachments directory."""
        path = saver.save("../../escape.txt", io.BytesIO(b"data"), DELIVERED)

        assert path == directory / ".._.._escape.txt"
        assert path.parent == directory
        assert not (tmp_path / "escape.txt").exists()

    def test_empty_name_gets_placeholder(
        self, saver: AttachmentSaver, directory: Path
    ):
        """An empty filename is replaced by a generated unique name."""
        path = saver.save("", io.BytesIO(b"anonymous"), DELIVERED)

        assert path.name.startswith("unknown-file-")
        assert path.read_bytes() == b"anonymous"

    def test_empty_names_never_collide(
        self, saver: AttachmentSaver, directory: Path
    ):
        """Two unnamed attachments produce two files."""
        first = saver.save("", io.BytesIO(b"one"))
        second = saver.save("", io.BytesIO(b"two"))

        assert first != second
        assert first.read_bytes() == b"one"
        assert second.read_bytes() == b"two"

    def test_overwrites_existing_file(self, saver: AttachmentSaver, directory: Path):
        """A file with the same name is replaced."""
        (directory / "report.pdf").write_bytes(b"old content that is longer")

        saver.save("report.pdf", io.BytesIO(b"new"))

        assert (directory / "report.pdf").read_bytes() == b"new"

    def test_sets_modification_time(self, saver: AttachmentSaver):
        """The file gets the message's delivery date as mtime and atime."""
        path = saver.save("report.pdf", io.BytesIO(b"x"), DELIVERED)

        stat = path.stat()
        assert stat.st_mtime == DELIVERED.timestamp()
        assert stat.st_atime == DELIVERED.timestamp()

    def test_time_update_failure_is_not_fatal(
        self, saver: AttachmentSaver, caplog: pytest.LogCaptureFixture
    ):
        """A failing utime is logged and the file is still saved."""
        with (
            caplog.at_level(logging.WARNING),
            patch(
                "imapattach.download.persist.os.utime",
                side_effect=OSError("read-only filesystem"),
            ),
        ):
            path = saver.save("report.pdf", io.BytesIO(b"x"), DELIVERED)

        assert path.read_bytes() == b"x"
        assert "Unable to update time" in caplog.text

    def test_missing_delivery_date_keeps_file(self, saver: AttachmentSaver):
        """Without a delivery date the file is saved as-is."""
        path = saver.save("report.pdf", io.BytesIO(b"x"), None)

        assert path.read_bytes() == b"x"

    def test_logs_saved_filename(
        self, saver: AttachmentSaver, caplog: pytest.LogCaptureFixture
    ):
        """A confirmation line names the saved file."""
        with caplog.at_level(logging.INFO):
            saver.save("report.pdf", io.BytesIO(b"x"), DELIVERED)

        assert "Saved report.pdf" in caplog.text

    def test_invalid_pattern_is_config_error(self, directory: Path):
        """A pattern that doesn't compile is rejected."""
        with pytest.raises(ConfigError, match="invalid filename pattern"):
            AttachmentSaver(directory, "(unclosed")

    def test_create_failure_raises(self, tmp_path: Path):
        """An unwritable destination raises AttachmentError."""
        saver = AttachmentSaver(tmp_path / "missing", "")

        with pytest.raises(AttachmentError) as exc_info:
            saver.save("report.pdf", io.BytesIO(b"x"))

        assert exc_info.value.filename == "report.pdf"
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_large_attachment_streams_in_chunks(
        self, saver: AttachmentSaver, directory: Path
    ):
        """Multi-megabyte content is copied exactly, one chunk at a time."""
        data = os.urandom(5 * 1024 * 1024 + 123)
        source = ChunkRecorder(data)

        path = saver.save("big.bin", source, DELIVERED)

        assert path.read_bytes() == data
        assert all(0 < size <= COPY_CHUNK_SIZE for size in source.read_sizes)
        assert len(source.read_sizes) > 1

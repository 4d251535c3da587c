"""Paginated attachment download pipeline.

Pages of messages are fetched from the server, decoded into MIME parts,
and matching attachments are written to disk.

Usage:
    from imapattach.download import AttachmentSaver, DownloadEngine, MessageDecoder

    saver = AttachmentSaver(Path("~/Attachments"), r"\\.pdf$")
    engine = DownloadEngine(session, MessageDecoder(saver), page_size=100)
    result = engine.run("INBOX")
"""

from .decoder import DecodedMessage, MessageDecoder, Part
from .engine import DownloadEngine, DownloadResult
from .pages import PageRange, page_ranges
from .persist import AttachmentSaver
from .stream import PageFetchStream

__all__ = [
    "AttachmentSaver",
    "DecodedMessage",
    "DownloadEngine",
    "DownloadResult",
    "MessageDecoder",
    "PageFetchStream",
    "PageRange",
    "Part",
    "page_ranges",
]

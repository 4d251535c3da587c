"""Partitioning of a mailbox's sequence numbers into pages."""

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class PageRange:
    """An inclusive range of message sequence numbers.

    Sequence numbers are positions in the mailbox at the time it was
    selected, not UIDs, so a range only stays meaningful while the
    mailbox is not modified.
    """

    first: int
    last: int

    @property
    def size(self) -> int:
        """Number of messages covered by this range."""
        return self.last - self.first + 1

    def __str__(self) -> str:
        return f"{self.first}-{self.last}"


def page_ranges(count: int, page_size: int) -> Iterator[PageRange]:
    """Split sequence numbers 1..count into ascending pages.

    Pages are contiguous and non-overlapping, each covers at most
    page_size messages, and the final page may be shorter. An empty
    mailbox yields no pages.

    Args:
        count: Number of messages in the mailbox.
        page_size: Maximum number of messages per page.

    Yields:
        PageRange values in ascending order.

    Raises:
        ValueError: If page_size is not positive.
    """
    if page_size <= 0:
        raise ValueError(f"page size must be positive, got {page_size}")

    first = 1
    while first <= count:
        last = min(first + page_size - 1, count)
        yield PageRange(first, last)
        first = last + 1

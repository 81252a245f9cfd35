"""Parsing of HTTP ``Range`` headers for ranged object reads."""

import re
from dataclasses import dataclass
from typing import Final, final

from server.apps.files.exceptions import (
    InvalidRequestError,
    RangeNotSatisfiableError,
)

_RANGE_PATTERN: Final = re.compile(r'^bytes=(\d*)-(\d*)$')


@final
@dataclass(frozen=True, slots=True)
class ByteRange:
    """Inclusive byte range inside an object of ``total`` bytes."""

    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        """Number of bytes covered by the range."""
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        """Value of the ``Content-Range`` response header."""
        return f'bytes {self.start}-{self.end}/{self.total}'


def parse_range_header(range_header: str, total_size: int) -> ByteRange:
    """Parse a single ``bytes=`` range against an object size.

    Supported forms are ``start-end``, ``start-`` (to the last byte)
    and ``-suffix`` (the last ``suffix`` bytes). Multiple ranges are
    not supported.

    Args:
        range_header: Header value, e.g. ``bytes=0-99``.
        total_size: Object size in bytes.

    Returns:
        Resolved byte range.

    Raises:
        InvalidRequestError: If the header is malformed.
        RangeNotSatisfiableError: If start or end falls outside the object.
    """
    match = _RANGE_PATTERN.match(range_header.strip())
    if match is None:
        raise InvalidRequestError(f'Malformed range header: {range_header!r}')

    raw_start, raw_end = match.groups()
    if not raw_start and not raw_end:
        raise InvalidRequestError(f'Malformed range header: {range_header!r}')

    if not raw_start:
        # Suffix range: the last N bytes
        suffix = int(raw_end)
        if suffix == 0 or total_size == 0:
            raise RangeNotSatisfiableError(range_header, total_size)
        start = max(total_size - suffix, 0)
        end = total_size - 1
    else:
        start = int(raw_start)
        end = int(raw_end) if raw_end else total_size - 1

    if start > end and start < total_size and end < total_size:
        raise InvalidRequestError(f'Malformed range header: {range_header!r}')
    if start >= total_size or end >= total_size:
        raise RangeNotSatisfiableError(range_header, total_size)

    return ByteRange(start=start, end=end, total=total_size)

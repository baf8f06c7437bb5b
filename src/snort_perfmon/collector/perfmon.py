"""Latest-row extraction from append-only perfmon files.

A perfmon file is a comma-separated log written by the Snort perfmon
preprocessor. Lines starting with ``#`` are comments, every other line is a
snapshot whose first field is a Unix timestamp. Only the last line is of
interest, so the file is memory-mapped and scanned backwards from the end
instead of being read in full.
"""

from __future__ import annotations

import logging
import mmap
import os
import stat
from pathlib import Path

from ..errors import CommentAsLastLineError, EmptyRowError, FileAccessError, FormatError

logger = logging.getLogger(__name__)

DELIMITER = b","
COMMENT = b"#"


def _last_line_bounds(buf: mmap.mmap | bytes, size: int) -> tuple[int, int]:
    """Return ``(start, end)`` of the last line in *buf*, terminator excluded."""
    end = size
    # One trailing terminator belongs to the last row, not to a new empty one.
    if end > 0 and buf[end - 1:end] == b"\n":
        end -= 1
    if end > 0 and buf[end - 1:end] == b"\r":
        end -= 1
    start = buf.rfind(b"\n", 0, end) + 1
    return start, end


def read_last_row(path: str | Path) -> list[str]:
    """Return the fields of the last data line of the perfmon file at *path*.

    Field 0 is the row timestamp. Raises :class:`FileAccessError` when the
    file cannot be opened or is not a regular file, and :class:`FormatError`
    when the last line is a comment, is empty, or is not valid UTF-8.
    """
    path = str(path)
    try:
        st = os.stat(path)
    except OSError as exc:
        raise FileAccessError(path, f"unable to open: {exc.strerror or exc}") from exc
    if not stat.S_ISREG(st.st_mode):
        raise FileAccessError(path, "not a regular file")

    try:
        fh = open(path, "rb")  # noqa: SIM115
    except OSError as exc:
        raise FileAccessError(path, f"unable to open: {exc.strerror or exc}") from exc

    with fh:
        try:
            size = os.fstat(fh.fileno()).st_size
        except OSError as exc:
            raise FileAccessError(path, f"unable to stat: {exc.strerror or exc}") from exc
        if size == 0:
            raise EmptyRowError(f"{path}: file is empty")

        try:
            buf = mmap.mmap(fh.fileno(), size, access=mmap.ACCESS_READ)
        except (OSError, ValueError) as exc:
            raise FileAccessError(path, f"mmap error: {exc}") from exc

        with buf:
            start, end = _last_line_bounds(buf, size)
            if buf[start:start + 1] == COMMENT:
                raise CommentAsLastLineError(f"{path}: last line of perfmon file is a comment")
            line = buf[start:end]

    if not line:
        raise EmptyRowError(f"{path}: last line of perfmon file is empty")

    field_count = line.count(DELIMITER) + 1
    try:
        text = line.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FormatError(f"{path}: last line is not valid UTF-8") from exc

    fields = text.split(",", field_count - 1)
    logger.debug("Read %d fields from %s", len(fields), path)
    return fields

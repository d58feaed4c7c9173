"""Byte-range helpers shared by the source mutators."""
from typing import Tuple

from ..analyzer.project import Edit


def extend_range_for_newline(source_bytes: bytes, start: int, end: int) -> Tuple[int, int]:
    """
    Adjusts the end index to consume a trailing newline if present,
    ensuring we don't leave empty lines behind.
    """
    length = len(source_bytes)
    current = end

    # Consume optional carriage return
    if current < length and source_bytes[current] == 13:  # \r
        current += 1

    # Consume newline
    if current < length and source_bytes[current] == 10:  # \n
        current += 1
        return (start, current)

    return (start, end)


def line_removal(source_bytes: bytes, start: int, end: int) -> Edit:
    """Delete [start, end); a statement alone on its line takes the whole line."""
    new_start, new_end = extend_range_for_newline(source_bytes, start, end)
    line_start = source_bytes.rfind(b'\n', 0, new_start) + 1
    if new_end > end and not source_bytes[line_start:new_start].strip():
        new_start = line_start
    return new_start, new_end, b''

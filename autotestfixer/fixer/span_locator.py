"""
Span resolution: line offsets and the expected-value search.
"""

from typing import Optional, Tuple

from ..core.errors import LineOutOfRangeError


def line_offsets(text: str, line_number: int) -> Tuple[int, int]:
    """
    Start and end offsets of a zero-based line

    The end offset excludes the line break. Raises LineOutOfRangeError
    for a negative line or one past the last line.
    """
    if line_number < 0:
        raise LineOutOfRangeError(line_number, text.count("\n") + 1)

    start = 0
    for _ in range(line_number):
        newline = text.find("\n", start)
        if newline < 0:
            raise LineOutOfRangeError(line_number, text.count("\n") + 1)
        start = newline + 1

    end = text.find("\n", start)
    if end < 0:
        end = len(text)
    elif end > start and text[end - 1] == "\r":
        end -= 1
    return start, end


def locate_replacement_span(
    file_text: str, line_start_offset: int, expected: Optional[str]
) -> Optional[Tuple[int, int]]:
    """
    Find the first occurrence of expected at or after line_start_offset

    The search deliberately starts at the failing line, not the top of the
    file, so an identical literal in test setup is never picked. A match
    may lie on a later line when the assertion spans several lines.

    Returns:
        (start, length) of the match, or None when it is not found
    """
    if not expected or line_start_offset < 0:
        return None

    start = file_text.find(expected, line_start_offset)
    if start < 0:
        return None
    return start, len(expected)

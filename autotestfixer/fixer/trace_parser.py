"""
Failure Parsing

Pulls the failing line number out of a stack trace and the compared
values out of an assertion message. Both inputs are free text produced
by the test runner, so everything here is plain regular expressions.
"""

import re
from typing import Optional, Pattern, Tuple, Union

from ..core.config import DEFAULT_TEST_FRAME_PATTERN

TEST_FRAME_PATTERN = re.compile(DEFAULT_TEST_FRAME_PATTERN)

# "expected: 5 but was: 7" on one line, or split over two lines
EXPECTED_PATTERN = re.compile(r"expected: (.+?)(?= but was: |$)", re.MULTILINE)
ACTUAL_PATTERN = re.compile(r"but was: (.+)$", re.MULTILINE)

NO_LINE = -1


def extract_failing_line(
    stacktrace: Optional[str],
    pattern: Union[str, Pattern[str]] = TEST_FRAME_PATTERN,
) -> int:
    """
    Find the failing test-source line in a stack trace

    Args:
        stacktrace: Newline separated frames
        pattern: Frame pattern whose first group is a 1-based line number

    Returns:
        Zero-based line number of the first matching frame in document
        order, or -1 when no frame matches
    """
    if not stacktrace:
        return NO_LINE

    frame_pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    for frame in stacktrace.split("\n"):
        match = frame_pattern.search(frame)
        if not match:
            continue
        # A custom pattern may capture nothing or something that is not a number
        try:
            return int(match.group(1)) - 1
        except (TypeError, ValueError):
            return NO_LINE

    return NO_LINE


def extract_expected_actual(error_message: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Extract the (expected, actual) pair from an assertion message

    The two markers are searched independently, so their order in the
    message does not matter. Returns None unless both are present.
    """
    if not error_message:
        return None

    expected_match = EXPECTED_PATTERN.search(error_message)
    actual_match = ACTUAL_PATTERN.search(error_message)
    if expected_match is None or actual_match is None:
        return None

    return (
        expected_match.group(1).rstrip("\r"),
        actual_match.group(1).rstrip("\r"),
    )


def unwrap_value(text: str) -> str:
    """Strip the <...> wrapper JUnit 5 and AssertJ print around values"""
    if len(text) >= 2 and text.startswith("<") and text.endswith(">"):
        return text[1:-1]
    return text


def trailing_reason(error_message: Optional[str]) -> str:
    """First line of an error message, for diagnostics"""
    if not error_message:
        return ""
    return error_message.strip().split("\n", 1)[0]

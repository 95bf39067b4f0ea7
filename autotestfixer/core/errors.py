"""
Error hierarchy for the fixer.

Per-record errors are converted into PatchOutcome values by the patcher;
only input errors at the CLI boundary turn into a non-zero exit.
"""


class AutoTestFixerError(Exception):
    """Base class for all fixer errors"""


class LocationResolutionError(AutoTestFixerError):
    """A test location reference does not map to an editable file"""


class LineOutOfRangeError(AutoTestFixerError):
    """A line number points past the end of the document"""

    def __init__(self, line_number: int, line_count: int):
        super().__init__(
            f"Line {line_number} is out of range (document has {line_count} lines)"
        )
        self.line_number = line_number
        self.line_count = line_count


class DocumentEditError(AutoTestFixerError):
    """A write transaction failed and was rolled back"""


class RunTriggerError(AutoTestFixerError):
    """The re-run could not be started"""


class TestResultParseError(AutoTestFixerError):
    """A test report could not be read"""

    __test__ = False  # keep pytest from collecting it

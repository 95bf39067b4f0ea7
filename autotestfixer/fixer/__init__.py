"""
Failed-test expectation patching

Reads failed tests, locates the failing assertion from the stack trace,
rewrites its expected value to the actual value, and re-runs the tests.
"""

from .fixer_types import (
    FailedTest,
    PatchPlan,
    PatchOutcome,
    PatchResult,
    FixReport,
    RunConfiguration,
)
from .trace_parser import extract_failing_line, extract_expected_actual, unwrap_value
from .span_locator import locate_replacement_span, line_offsets
from .document_access import TextDocument, DocumentAccess, FileDocumentAccess
from .rerun_trigger import RunTrigger, CommandRunTrigger, RecordingRunTrigger
from .result_sources import TestResultSource, InMemoryTestResultSource, JUnitXmlResultSource
from .failure_patcher import FailurePatcher
from .action import ActionContext, FixFailedTestsAction

__all__ = [
    "FailedTest",
    "PatchPlan",
    "PatchOutcome",
    "PatchResult",
    "FixReport",
    "RunConfiguration",
    "extract_failing_line",
    "extract_expected_actual",
    "unwrap_value",
    "locate_replacement_span",
    "line_offsets",
    "TextDocument",
    "DocumentAccess",
    "FileDocumentAccess",
    "RunTrigger",
    "CommandRunTrigger",
    "RecordingRunTrigger",
    "TestResultSource",
    "InMemoryTestResultSource",
    "JUnitXmlResultSource",
    "FailurePatcher",
    "ActionContext",
    "FixFailedTestsAction",
]

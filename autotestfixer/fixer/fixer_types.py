"""
Type definitions for failed-test patching

Records flowing in from a test result source, the per-record patch plan,
and the structured outcome reported back to the host.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class PatchOutcome(Enum):
    """What happened to a single failed test"""

    PATCHED = "patched"
    SKIPPED_NO_ERROR = "skipped_no_error"  # No assertion message at all
    SKIPPED_UNPARSEABLE = "skipped_unparseable"  # No line, or no expected/actual pair
    SKIPPED_NO_DOCUMENT = "skipped_no_document"  # Location maps to no editable file
    SKIPPED_NOT_FOUND = "skipped_not_found"  # Expected text absent from the failing line on
    SKIPPED_UNCHANGED = "skipped_unchanged"  # Expected and actual print identically
    EDIT_FAILED = "edit_failed"  # Write transaction rolled back


@dataclass(frozen=True)
class FailedTest:
    """One failed test outcome, as reported by the test runner"""

    location_ref: str
    error_message: Optional[str]
    stacktrace: str = ""
    name: Optional[str] = None

    __test__ = False  # keep pytest from collecting it

    @property
    def display_name(self) -> str:
        return self.name or self.location_ref


@dataclass
class PatchPlan:
    """Derived edit for one failed test; discarded after the attempt"""

    line_number: int = -1
    expected_text: Optional[str] = None
    actual_text: Optional[str] = None
    span_start: int = -1
    span_length: int = 0
    line_text: Optional[str] = None

    @property
    def has_line(self) -> bool:
        return self.line_number >= 0

    @property
    def has_values(self) -> bool:
        return self.expected_text is not None and self.actual_text is not None

    @property
    def span_found(self) -> bool:
        return self.span_start >= 0

    @property
    def is_actionable(self) -> bool:
        return self.has_line and self.has_values and self.span_found

    @property
    def span_end(self) -> int:
        return self.span_start + self.span_length


@dataclass
class RunConfiguration:
    """How to re-run the tests; passed explicitly instead of read from host state"""

    name: str
    command: str
    working_dir: Optional[str] = None


@dataclass
class PatchResult:
    """Outcome of one patch attempt"""

    test: FailedTest
    outcome: PatchOutcome
    plan: Optional[PatchPlan] = None
    reason: Optional[str] = None
    rerun_triggered: bool = False

    @property
    def patched(self) -> bool:
        return self.outcome == PatchOutcome.PATCHED


@dataclass
class FixReport:
    """All results of one invocation, in record order"""

    results: List[PatchResult] = field(default_factory=list)
    reruns_triggered: int = 0

    @property
    def patched(self) -> List[PatchResult]:
        return [r for r in self.results if r.patched]

    @property
    def skipped(self) -> List[PatchResult]:
        return [r for r in self.results if not r.patched]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": len(self.results),
            "patched": len(self.patched),
            "reruns_triggered": self.reruns_triggered,
            "results": [
                {
                    "test": r.test.display_name,
                    "location": r.test.location_ref,
                    "outcome": r.outcome.value,
                    "reason": r.reason,
                    "line": r.plan.line_number + 1 if r.plan and r.plan.has_line else None,
                    "expected": r.plan.expected_text if r.plan else None,
                    "actual": r.plan.actual_text if r.plan else None,
                    "rerun_triggered": r.rerun_triggered,
                }
                for r in self.results
            ],
        }

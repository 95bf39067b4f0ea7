"""
Failure Patcher

Walks a batch of failed tests, rewrites the expected value of each
failing assertion to the value the test actually produced, and asks for
a re-run after every successful patch.

One record never aborts the batch: every problem is logged and turned
into a PatchOutcome on that record's result.
"""

import re
from typing import Iterable, Optional

import structlog

from ..core.config import Settings, settings as default_settings
from ..core.errors import (
    DocumentEditError,
    LineOutOfRangeError,
    LocationResolutionError,
    RunTriggerError,
)
from .document_access import DocumentAccess, TextDocument
from .fixer_types import (
    FailedTest,
    FixReport,
    PatchOutcome,
    PatchPlan,
    PatchResult,
    RunConfiguration,
)
from .rerun_trigger import RunTrigger
from .span_locator import locate_replacement_span
from .trace_parser import (
    extract_expected_actual,
    extract_failing_line,
    trailing_reason,
    unwrap_value,
)

logger = structlog.get_logger(__name__)


class FailurePatcher:
    """
    Patches failed assertions in test sources

    Documents and re-runs come from the host through DocumentAccess and
    RunTrigger, so the patcher itself holds no host state.
    """

    def __init__(
        self,
        documents: DocumentAccess,
        run_trigger: RunTrigger,
        settings: Optional[Settings] = None,
    ):
        self.documents = documents
        self.run_trigger = run_trigger
        self.config = settings or default_settings
        self.frame_pattern = re.compile(self.config.test_frame_pattern)

    def fix_failures(
        self,
        tests: Iterable[FailedTest],
        configuration: Optional[RunConfiguration] = None,
    ) -> FixReport:
        """
        Patch every failed test in the order supplied

        Args:
            tests: Failed tests in runner order; never re-sorted
            configuration: Run configuration to re-run after a patch

        Returns:
            Report with one result per test and the number of re-runs started
        """
        report = FixReport()

        for test in tests:
            result = self._fix_one(test)
            report.results.append(result)

            if result.patched and not self.config.rerun_once_per_batch:
                result.rerun_triggered = self._trigger_rerun(configuration)
                if result.rerun_triggered:
                    report.reruns_triggered += 1

        if self.config.rerun_once_per_batch and report.patched:
            last = report.patched[-1]
            last.rerun_triggered = self._trigger_rerun(configuration)
            if last.rerun_triggered:
                report.reruns_triggered += 1

        logger.info(
            "fixer.batch_completed",
            total=len(report.results),
            patched=len(report.patched),
            reruns=report.reruns_triggered,
        )
        return report

    def plan_patch(
        self,
        test: FailedTest,
        document: TextDocument,
        line_number: Optional[int] = None,
    ) -> PatchPlan:
        """
        Work out the edit for one failed test without touching the document

        Raises LineOutOfRangeError when the stack trace points past the end
        of the document.
        """
        if line_number is None:
            line_number = extract_failing_line(test.stacktrace, self.frame_pattern)

        plan = PatchPlan(line_number=line_number)
        if not plan.has_line:
            return plan

        line_start = document.get_line_start_offset(line_number)
        plan.line_text = document.get_line_text(line_number)

        values = extract_expected_actual(test.error_message)
        if values is None:
            return plan

        expected, actual = values
        if self.config.unwrap_value_brackets:
            expected, actual = unwrap_value(expected), unwrap_value(actual)
        plan.expected_text, plan.actual_text = expected, actual

        span = locate_replacement_span(document.text, line_start, expected)
        if span is not None:
            plan.span_start, plan.span_length = span
        return plan

    def apply_patch(self, document: TextDocument, plan: PatchPlan) -> PatchOutcome:
        """
        Replace the planned span with the actual value in one transaction

        The document is not saved here; that is up to the document host.
        Raises DocumentEditError when the transaction rolls back.
        """
        if not plan.has_line or not plan.has_values or not plan.actual_text:
            return PatchOutcome.SKIPPED_UNPARSEABLE
        if not plan.span_found:
            return PatchOutcome.SKIPPED_NOT_FOUND
        if plan.expected_text == plan.actual_text:
            return PatchOutcome.SKIPPED_UNCHANGED

        # Stale plan: the span no longer holds the expected text
        if document.text[plan.span_start:plan.span_end] != plan.expected_text:
            return PatchOutcome.SKIPPED_NOT_FOUND

        with document.write_transaction("Fix expected value") as doc:
            doc.replace_string(plan.span_start, plan.span_end, plan.actual_text)
        return PatchOutcome.PATCHED

    def _fix_one(self, test: FailedTest) -> PatchResult:
        if not test.error_message:
            return PatchResult(test=test, outcome=PatchOutcome.SKIPPED_NO_ERROR)

        log = logger.bind(test=test.display_name, location=test.location_ref)
        log.info("fixer.failed_test", message=test.error_message)
        log.debug("fixer.stacktrace", stacktrace=test.stacktrace)

        line_number = extract_failing_line(test.stacktrace, self.frame_pattern)
        if line_number < 0:
            log.warning("fixer.line_not_found", reason="Cannot find line number in stacktrace")
            return PatchResult(
                test=test,
                outcome=PatchOutcome.SKIPPED_UNPARSEABLE,
                plan=PatchPlan(),
                reason="no test frame in stacktrace",
            )

        try:
            document = self.documents.open_document(test.location_ref)
        except LocationResolutionError as e:
            log.debug("fixer.document_unavailable", error=str(e))
            return PatchResult(
                test=test,
                outcome=PatchOutcome.SKIPPED_NO_DOCUMENT,
                plan=PatchPlan(line_number=line_number),
                reason=str(e),
            )

        try:
            plan = self.plan_patch(test, document, line_number)
        except LineOutOfRangeError as e:
            log.warning("fixer.line_out_of_range", line=line_number + 1, error=str(e))
            return PatchResult(
                test=test,
                outcome=PatchOutcome.SKIPPED_UNPARSEABLE,
                plan=PatchPlan(line_number=line_number),
                reason=str(e),
            )

        log.info("fixer.failed_line", line=line_number + 1, text=plan.line_text)

        if not plan.has_values:
            log.warning(
                "fixer.values_not_found",
                reason="Cannot match expected or actual",
                message=trailing_reason(test.error_message),
            )
            return PatchResult(
                test=test,
                outcome=PatchOutcome.SKIPPED_UNPARSEABLE,
                plan=plan,
                reason="no expected/actual pair in error message",
            )

        log.info("fixer.values", expected=plan.expected_text, actual=plan.actual_text)

        if not plan.span_found:
            log.warning(
                "fixer.span_not_found",
                expected=plan.expected_text,
                line=line_number + 1,
            )
            return PatchResult(
                test=test,
                outcome=PatchOutcome.SKIPPED_NOT_FOUND,
                plan=plan,
                reason="expected value not found from the failing line onward",
            )

        if plan.expected_text == plan.actual_text:
            log.warning("fixer.values_identical", value=plan.expected_text)
            return PatchResult(
                test=test,
                outcome=PatchOutcome.SKIPPED_UNCHANGED,
                plan=plan,
                reason="expected and actual values print the same",
            )

        try:
            outcome = self.apply_patch(document, plan)
        except DocumentEditError as e:
            log.error("fixer.edit_failed", error=str(e))
            return PatchResult(
                test=test, outcome=PatchOutcome.EDIT_FAILED, plan=plan, reason=str(e)
            )

        if outcome != PatchOutcome.PATCHED:
            log.warning("fixer.patch_skipped", outcome=outcome.value)
            return PatchResult(test=test, outcome=outcome, plan=plan)

        log.info(
            "fixer.patched",
            line=line_number + 1,
            expected=plan.expected_text,
            actual=plan.actual_text,
        )
        return PatchResult(test=test, outcome=PatchOutcome.PATCHED, plan=plan)

    def _trigger_rerun(self, configuration: Optional[RunConfiguration]) -> bool:
        # The re-run reads sources from disk, so pending edits go first
        try:
            self.documents.save_all()
        except OSError as e:
            logger.error("fixer.save_failed", error=str(e))
            return False

        try:
            return self.run_trigger.trigger(configuration)
        except RunTriggerError as e:
            logger.error("fixer.rerun_failed", error=str(e))
            return False

#!/usr/bin/env python3
"""
autotestfixer CLI - patch failed assertions from JUnit reports and re-run the tests.

Usage:
  autotestfixer fix --workspace /path/to/repo --report target/surefire-reports --rerun "mvn -q test"
  autotestfixer fix --workspace . --report build/test-results/test --dry-run --json
  autotestfixer status --workspace . --report target/surefire-reports
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from autotestfixer.core.config import settings
from autotestfixer.core.errors import TestResultParseError
from autotestfixer.core.logging import configure_logging
from autotestfixer.fixer.action import ActionContext, FixFailedTestsAction
from autotestfixer.fixer.document_access import FileDocumentAccess
from autotestfixer.fixer.fixer_types import FixReport, RunConfiguration
from autotestfixer.fixer.rerun_trigger import CommandRunTrigger, RecordingRunTrigger
from autotestfixer.fixer.result_sources import JUnitXmlResultSource


EXIT_OK = 0
EXIT_UNAVAILABLE = 1
EXIT_BAD_INPUT = 2


def summarize_report(report: FixReport, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
        return

    print("Fixed tests:")
    for result in report.results:
        marker = "fixed" if result.patched else result.outcome.value
        line = f"- {result.test.display_name}: {marker}"
        if result.patched and result.plan:
            line += f" ({result.plan.expected_text} -> {result.plan.actual_text})"
        elif result.reason:
            line += f" ({result.reason})"
        print(line)
    print(f"- patched: {len(report.patched)} of {len(report.results)}")
    print(f"- reruns triggered: {report.reruns_triggered}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autotestfixer",
        description="Rewrite failing assertion expectations and re-run the tests",
    )
    parser.add_argument("--log-level", default=None, help="Override log level")
    parser.add_argument(
        "--log-json", action="store_true", help="Emit logs as JSON lines"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    fix_cmd = sub.add_parser("fix", help="Patch failed tests found in JUnit reports")
    fix_cmd.add_argument("--workspace", required=True, help="Workspace root path")
    fix_cmd.add_argument(
        "--report",
        required=True,
        nargs="+",
        help="JUnit XML report files or directories",
    )
    fix_cmd.add_argument(
        "--rerun",
        default=None,
        help="Command that re-runs the tests (default: AUTOTESTFIXER_RERUN_COMMAND)",
    )
    fix_cmd.add_argument(
        "--source-root",
        action="append",
        default=None,
        help="Test source root relative to the workspace (repeatable)",
    )
    fix_cmd.add_argument(
        "--once", action="store_true", help="Re-run once after the whole batch"
    )
    fix_cmd.add_argument(
        "--no-rerun", action="store_true", help="Patch without re-running"
    )
    fix_cmd.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan patches and report them without writing files or re-running",
    )
    fix_cmd.add_argument("--json", action="store_true", help="Print the report as JSON")

    status_cmd = sub.add_parser(
        "status", help="Show whether the action is available and what it would see"
    )
    status_cmd.add_argument("--workspace", required=True, help="Workspace root path")
    status_cmd.add_argument(
        "--report", required=True, nargs="+", help="JUnit XML report files or directories"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level, args.log_json or None)

    result_source = JUnitXmlResultSource(args.report)
    context = ActionContext(workspace=args.workspace, result_source=result_source)

    if args.command == "status":
        action = FixFailedTestsAction(settings)
        available = action.is_available(context)
        try:
            failed = result_source.failed_tests() if available else []
        except TestResultParseError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_BAD_INPUT
        print(f"available: {'yes' if available else 'no'}")
        print(f"failed tests: {len(failed)}")
        for test in failed:
            print(f"- {test.display_name}")
        return EXIT_OK if available else EXIT_UNAVAILABLE

    updates = {}
    if args.source_root:
        updates["source_roots"] = args.source_root
    if args.once:
        updates["rerun_once_per_batch"] = True
    config = settings.model_copy(update=updates)

    rerun_command = args.rerun or config.rerun_command
    if rerun_command and not args.no_rerun:
        context.configuration = RunConfiguration(
            name="rerun", command=rerun_command, working_dir=args.workspace
        )

    if args.dry_run or args.no_rerun:
        run_trigger = RecordingRunTrigger()
    else:
        run_trigger = CommandRunTrigger()

    documents = FileDocumentAccess(
        args.workspace,
        source_roots=config.source_roots,
        encoding=config.file_encoding,
        autosave=config.autosave,
        read_only=args.dry_run,
    )
    action = FixFailedTestsAction(config, run_trigger=run_trigger, documents=documents)

    try:
        report = action.perform(context)
    except TestResultParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    if report is None:
        print("Nothing to fix: no workspace or no test results selected", file=sys.stderr)
        return EXIT_UNAVAILABLE

    documents.save_all()

    summarize_report(report, args.json)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

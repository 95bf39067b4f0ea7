"""
Test Result Sources

Supply failed-test records in the order the runner reported them.
JUnitXmlResultSource reads Surefire / Gradle TEST-*.xml reports.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable, List, Protocol, Sequence, Union

import structlog

from ..core.errors import TestResultParseError
from .fixer_types import FailedTest

logger = structlog.get_logger(__name__)

FAILURE_TAGS = ("failure", "error")


class TestResultSource(Protocol):
    __test__ = False

    def failed_tests(self) -> List[FailedTest]:
        ...


class InMemoryTestResultSource:
    __test__ = False

    def __init__(self, tests: Iterable[FailedTest]):
        self._tests = list(tests)

    def failed_tests(self) -> List[FailedTest]:
        return list(self._tests)


class JUnitXmlResultSource:
    """
    Failed tests from JUnit XML reports

    Accepts report files and directories; a directory contributes its
    TEST-*.xml files (or every *.xml file when there are none), sorted by
    name. Inside a report, test cases keep document order.
    """

    __test__ = False

    def __init__(self, paths: Sequence[Union[str, Path]]):
        self.paths = [Path(p) for p in paths]

    def report_files(self) -> List[Path]:
        files: List[Path] = []
        for path in self.paths:
            if path.is_dir():
                reports = sorted(path.glob("TEST-*.xml")) or sorted(path.glob("*.xml"))
                files.extend(reports)
            elif path.is_file():
                files.append(path)
            else:
                raise TestResultParseError(f"Test report not found: {path}")
        return files

    def failed_tests(self) -> List[FailedTest]:
        tests: List[FailedTest] = []
        for report in self.report_files():
            tests.extend(self._parse_report(report))
        logger.debug("result_sources.loaded", reports=len(self.paths), failed=len(tests))
        return tests

    def _parse_report(self, report: Path) -> List[FailedTest]:
        try:
            root = ET.parse(report).getroot()
        except (ET.ParseError, OSError) as e:
            raise TestResultParseError(f"Cannot parse test report {report}: {e}") from e

        tests = []
        for case in root.iter("testcase"):
            failure = next(
                (child for child in case if child.tag in FAILURE_TAGS), None
            )
            if failure is None:
                continue

            class_name = case.get("classname", "")
            test_name = case.get("name", "")
            tests.append(
                FailedTest(
                    location_ref=f"java:test://{class_name}/{test_name}",
                    error_message=failure.get("message"),
                    stacktrace=(failure.text or "").strip("\n"),
                    name=f"{class_name}.{test_name}" if class_name else test_name,
                )
            )
        return tests

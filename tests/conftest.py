"""Pytest fixtures for the failed-test patcher

Provides:
- java_source: test source text with the assertion on a known line
- documents: in-memory DocumentAccess keyed by location reference
- run_config: run configuration passed to the patcher
- workspace: Maven-style workspace on disk with one failing test class
"""

import os
from xml.sax.saxutils import escape

os.environ.setdefault("AUTOTESTFIXER_LOG_LEVEL", "DEBUG")

import pytest  # noqa: E402
from typing import Dict  # noqa: E402

from autotestfixer.core.config import Settings  # noqa: E402
from autotestfixer.core.errors import LocationResolutionError  # noqa: E402
from autotestfixer.fixer.document_access import TextDocument  # noqa: E402
from autotestfixer.fixer.fixer_types import FailedTest, RunConfiguration  # noqa: E402
from autotestfixer.fixer.rerun_trigger import RecordingRunTrigger  # noqa: E402

FOO_TEST_REF = "java:test://com.acme.FooTest/adds"
BAR_TEST_REF = "java:test://com.acme.BarTest/concatenates"

FILLER = "        // filler"


def build_source(class_name: str, assertions: Dict[int, str], line_count: int = 20) -> str:
    """Java-ish source where assertions[n] sits on 1-based line n"""
    lines = []
    for number in range(1, line_count + 1):
        if number == 1:
            lines.append("package com.acme;")
        elif number == 3:
            lines.append(f"class {class_name} {{")
        elif number in assertions:
            lines.append(assertions[number])
        elif number == line_count:
            lines.append("}")
        else:
            lines.append(FILLER)
    return "\n".join(lines) + "\n"


def stacktrace_for(class_name: str, line: int) -> str:
    return (
        "org.opentest4j.AssertionFailedError: expected: <5> but was: <7>\n"
        "\tat org.junit.jupiter.api.AssertionUtils.fail(AssertionUtils.java:55)\n"
        f"\tat com.acme.{class_name}.adds({class_name}.java:{line})\n"
        "\tat java.base/java.util.ArrayList.forEach(ArrayList.java:1511)\n"
    )


class InMemoryDocuments:
    """DocumentAccess over a dict of location reference -> TextDocument"""

    def __init__(self, documents: Dict[str, TextDocument]):
        self.documents = documents
        self.opened = []
        self.saves = 0

    def open_document(self, location_ref: str) -> TextDocument:
        self.opened.append(location_ref)
        try:
            return self.documents[location_ref]
        except KeyError:
            raise LocationResolutionError(f"No source file for {location_ref}")

    def save_all(self):
        self.saves += 1
        saved = [doc for doc in self.documents.values() if doc.modified]
        for doc in saved:
            doc.modified = False
        return [doc.path for doc in saved]


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def java_source():
    return build_source("FooTest", {12: "        assertEquals(5, result);"})


@pytest.fixture
def foo_document(java_source):
    return TextDocument(java_source)


@pytest.fixture
def documents(foo_document):
    return InMemoryDocuments({FOO_TEST_REF: foo_document})


@pytest.fixture
def run_trigger():
    return RecordingRunTrigger()


@pytest.fixture
def run_config():
    return RunConfiguration(name="FooTest", command="mvn -q test")


@pytest.fixture
def foo_failure():
    return FailedTest(
        location_ref=FOO_TEST_REF,
        error_message="expected: 5 but was: 7",
        stacktrace="at FooTest.java:12\n...",
        name="com.acme.FooTest.adds",
    )


SUREFIRE_REPORT = """<?xml version="1.0" encoding="UTF-8"?>
<testsuite name="com.acme.FooTest" tests="3" failures="1" errors="1" skipped="0">
  <testcase name="adds" classname="com.acme.FooTest" time="0.01">
    <failure message="expected: &lt;5&gt; but was: &lt;7&gt;" type="org.opentest4j.AssertionFailedError">{trace}</failure>
  </testcase>
  <testcase name="passes" classname="com.acme.FooTest" time="0.00"/>
  <testcase name="explodes" classname="com.acme.FooTest" time="0.00">
    <error type="java.lang.IllegalStateException">java.lang.IllegalStateException
	at com.acme.FooTest.explodes(FooTest.java:16)
</error>
  </testcase>
</testsuite>
"""


@pytest.fixture
def workspace(tmp_path, java_source):
    """Maven layout: src/test/java/com/acme/FooTest.java plus a surefire report"""
    source_dir = tmp_path / "src" / "test" / "java" / "com" / "acme"
    source_dir.mkdir(parents=True)
    (source_dir / "FooTest.java").write_text(java_source)

    reports = tmp_path / "target" / "surefire-reports"
    reports.mkdir(parents=True)
    (reports / "TEST-com.acme.FooTest.xml").write_text(
        SUREFIRE_REPORT.format(trace=escape(stacktrace_for("FooTest", 12)))
    )
    return tmp_path

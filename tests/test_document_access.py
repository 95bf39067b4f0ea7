"""
Tests for text documents, write transactions and location resolution.
"""

from pathlib import Path

import pytest

from autotestfixer.core.errors import DocumentEditError, LocationResolutionError
from autotestfixer.fixer.document_access import (
    FileDocumentAccess,
    TextDocument,
    parse_location_ref,
)


class TestTextDocument:
    def test_line_lookups(self):
        doc = TextDocument("first\nsecond\nthird")
        assert doc.line_count == 3
        assert doc.get_line_start_offset(1) == 6
        assert doc.get_line_end_offset(1) == 12
        assert doc.get_line_text(2) == "third"

    def test_replace_requires_transaction(self):
        doc = TextDocument("abc")
        with pytest.raises(DocumentEditError):
            doc.replace_string(0, 1, "x")
        assert doc.text == "abc"

    def test_committed_transaction_is_one_undo_step(self):
        doc = TextDocument("value = 5")
        with doc.write_transaction("fix") as d:
            d.replace_string(8, 9, "7")
            d.replace_string(0, 5, "total")
        assert doc.text == "total = 7"
        assert doc.modified

        assert doc.undo() == "fix"
        assert doc.text == "value = 5"
        assert doc.undo() is None

    def test_failure_rolls_back_everything(self):
        doc = TextDocument("value = 5")
        with pytest.raises(DocumentEditError):
            with doc.write_transaction("fix") as d:
                d.replace_string(8, 9, "7")
                raise RuntimeError("host refused the edit")
        assert doc.text == "value = 5"
        assert not doc.modified

    def test_invalid_range_rolls_back(self):
        doc = TextDocument("abc")
        with pytest.raises(DocumentEditError):
            with doc.write_transaction() as d:
                d.replace_string(0, 1, "x")
                d.replace_string(2, 10, "y")
        assert doc.text == "abc"

    def test_commit_listener_runs_once_per_transaction(self):
        doc = TextDocument("abc")
        seen = []
        doc.add_commit_listener(lambda d: seen.append(d.text))
        with doc.write_transaction() as d:
            d.replace_string(0, 1, "x")
        with doc.write_transaction():
            pass  # no change, nothing committed
        assert seen == ["xbc"]

    def test_failing_commit_listener_rolls_back(self):
        doc = TextDocument("abc")

        def refuse(_doc):
            raise OSError("disk full")

        doc.add_commit_listener(refuse)
        with pytest.raises(DocumentEditError, match="disk full"):
            with doc.write_transaction("fix") as d:
                d.replace_string(0, 1, "x")
        assert doc.text == "abc"
        assert not doc.modified
        assert doc.undo() is None


class TestParseLocationRef:
    @pytest.mark.parametrize(
        "ref,expected",
        [
            ("java:test://com.acme.FooTest/adds", ("class", "com.acme.FooTest")),
            ("java:suite://com.acme.FooTest", ("class", "com.acme.FooTest")),
            ("java:test://com.acme.FooTest$Nested/adds", ("class", "com.acme.FooTest$Nested")),
            ("file:///tmp/FooTest.java:12", ("path", "/tmp/FooTest.java")),
            ("src/FooTest.java", ("path", "src/FooTest.java")),
        ],
    )
    def test_parse(self, ref, expected):
        assert parse_location_ref(ref) == expected


class TestFileDocumentAccess:
    def test_resolves_class_under_source_root(self, workspace):
        access = FileDocumentAccess(str(workspace), source_roots=["src/test/java"])
        path = access.resolve_location("java:test://com.acme.FooTest/adds")
        assert path == (workspace / "src/test/java/com/acme/FooTest.java").resolve()

    def test_nested_class_maps_to_outer_file(self, workspace):
        access = FileDocumentAccess(str(workspace), source_roots=["src/test/java"])
        path = access.resolve_location("java:test://com.acme.FooTest$WhenEmpty/adds")
        assert path.name == "FooTest.java"

    def test_falls_back_to_unique_file_name(self, workspace):
        access = FileDocumentAccess(str(workspace), source_roots=[])
        path = access.resolve_location("java:suite://org.other.FooTest")
        assert path == (workspace / "src/test/java/com/acme/FooTest.java").resolve()

    def test_walk_prefers_matching_package_across_modules(self, tmp_path):
        for module, package in [("a-module", "com/aaa"), ("b-module", "com/acme")]:
            source_dir = tmp_path / module / "src/test/java" / package
            source_dir.mkdir(parents=True)
            (source_dir / "FooTest.java").write_text(f"// {module}\n")

        access = FileDocumentAccess(str(tmp_path), source_roots=["src/test/java"])
        path = access.resolve_location("java:test://com.acme.FooTest/adds")
        assert path == (tmp_path / "b-module/src/test/java/com/acme/FooTest.java").resolve()

        # Same simple name in two packages, neither matching: refuse to guess
        with pytest.raises(LocationResolutionError):
            access.resolve_location("java:test://org.other.FooTest/adds")

    def test_relative_and_file_refs(self, workspace):
        access = FileDocumentAccess(str(workspace))
        rel = "src/test/java/com/acme/FooTest.java"
        assert access.resolve_location(rel).name == "FooTest.java"
        assert access.resolve_location(f"file://{workspace / rel}:12").name == "FooTest.java"

    @pytest.mark.parametrize(
        "ref",
        [
            "java:test://com.acme.MissingTest/adds",
            "src/test/java/com/acme/Missing.java",
            "../outside/FooTest.java",
            "",
        ],
    )
    def test_unresolvable(self, workspace, ref):
        access = FileDocumentAccess(str(workspace), source_roots=["src/test/java"])
        with pytest.raises(LocationResolutionError):
            access.open_document(ref)

    def test_one_buffer_per_file(self, workspace):
        access = FileDocumentAccess(str(workspace), source_roots=["src/test/java"])
        first = access.open_document("java:test://com.acme.FooTest/adds")
        second = access.open_document("java:suite://com.acme.FooTest")
        assert first is second

    def test_autosave_writes_on_commit(self, workspace):
        access = FileDocumentAccess(str(workspace), source_roots=["src/test/java"])
        doc = access.open_document("java:test://com.acme.FooTest/adds")
        with doc.write_transaction() as d:
            d.replace_string(0, len("package"), "PACKAGE")
        assert Path(doc.path).read_text().startswith("PACKAGE com.acme;")
        assert not doc.modified

    def test_without_autosave_file_is_untouched_until_save_all(self, workspace):
        access = FileDocumentAccess(
            str(workspace), source_roots=["src/test/java"], autosave=False
        )
        doc = access.open_document("java:test://com.acme.FooTest/adds")
        with doc.write_transaction() as d:
            d.replace_string(0, len("package"), "PACKAGE")
        assert Path(doc.path).read_text().startswith("package")
        assert access.modified_documents() == [doc]

        assert access.save_all() == [doc.path]
        assert Path(doc.path).read_text().startswith("PACKAGE")

    def test_read_only_host_never_writes(self, workspace):
        access = FileDocumentAccess(
            str(workspace), source_roots=["src/test/java"], read_only=True
        )
        doc = access.open_document("java:test://com.acme.FooTest/adds")
        with doc.write_transaction() as d:
            d.replace_string(0, len("package"), "PACKAGE")

        assert access.save_all() == []
        assert Path(doc.path).read_text().startswith("package")
        assert doc.modified

    def test_preserves_crlf_line_endings(self, tmp_path):
        source = tmp_path / "CrlfTest.java"
        source.write_bytes(b"class CrlfTest {\r\n  assertEquals(5, x);\r\n}\r\n")
        access = FileDocumentAccess(str(tmp_path))
        doc = access.open_document("CrlfTest.java")
        assert doc.get_line_text(1) == "  assertEquals(5, x);"
        start = doc.text.index("5")
        with doc.write_transaction() as d:
            d.replace_string(start, start + 1, "7")
        assert source.read_bytes() == b"class CrlfTest {\r\n  assertEquals(7, x);\r\n}\r\n"

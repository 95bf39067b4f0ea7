"""
Document Access

Mutable text buffers for test sources and the resolver that maps a test
location reference onto one. Edits go through a write transaction that
either commits completely or restores the buffer, and every committed
transaction is one undo step.
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

import structlog

from ..core.errors import DocumentEditError, LocationResolutionError
from .span_locator import line_offsets

logger = structlog.get_logger(__name__)

SOURCE_EXTENSIONS = (".java", ".kt", ".groovy")
SKIPPED_DIRS = {"node_modules", "build", "target", "out", "dist", "__pycache__"}


class TextDocument:
    """
    In-memory text buffer with line lookups and transactional edits

    replace_string is only allowed inside write_transaction(); a failure
    inside the block restores the text as it was before the block.
    """

    def __init__(self, text: str, path: Optional[Path] = None):
        self._text = text
        self.path = path
        self.modified = False
        self._undo_stack: List[Tuple[str, str]] = []  # (transaction name, text before)
        self._in_transaction = False
        self._commit_listeners: List[Callable[["TextDocument"], None]] = []

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return self._text.count("\n") + 1

    def get_line_start_offset(self, line_number: int) -> int:
        return line_offsets(self._text, line_number)[0]

    def get_line_end_offset(self, line_number: int) -> int:
        return line_offsets(self._text, line_number)[1]

    def get_line_text(self, line_number: int) -> str:
        start, end = line_offsets(self._text, line_number)
        return self._text[start:end]

    def add_commit_listener(self, listener: Callable[["TextDocument"], None]):
        self._commit_listeners.append(listener)

    def replace_string(self, start: int, end: int, replacement: str):
        if not self._in_transaction:
            raise DocumentEditError("replace_string called outside a write transaction")
        if start < 0 or end < start or end > len(self._text):
            raise DocumentEditError(
                f"Invalid range [{start}, {end}) for document of length {len(self._text)}"
            )
        self._text = self._text[:start] + replacement + self._text[end:]

    @contextmanager
    def write_transaction(self, name: str = "edit") -> Iterator["TextDocument"]:
        """All-or-nothing edit scope; commits one undo entry on success"""
        if self._in_transaction:
            raise DocumentEditError("Nested write transactions are not supported")

        snapshot = self._text
        self._in_transaction = True
        try:
            yield self
        except Exception as e:
            self._text = snapshot
            if isinstance(e, DocumentEditError):
                raise
            raise DocumentEditError(f"Transaction '{name}' rolled back: {e}") from e
        finally:
            self._in_transaction = False

        if self._text != snapshot:
            was_modified = self.modified
            self._undo_stack.append((name, snapshot))
            self.modified = True
            try:
                for listener in self._commit_listeners:
                    listener(self)
            except Exception as e:
                self._undo_stack.pop()
                self._text = snapshot
                self.modified = was_modified
                raise DocumentEditError(
                    f"Transaction '{name}' could not be committed: {e}"
                ) from e

    def undo(self) -> Optional[str]:
        """Revert the last committed transaction; returns its name"""
        if not self._undo_stack:
            return None
        name, previous = self._undo_stack.pop()
        self._text = previous
        self.modified = True
        for listener in self._commit_listeners:
            listener(self)
        return name


class DocumentAccess(Protocol):
    """Resolves a test location reference to an editable document"""

    def open_document(self, location_ref: str) -> TextDocument:
        ...

    def save_all(self) -> List[Path]:
        """Persist modified documents; called before every re-run"""
        ...


def parse_location_ref(location_ref: str) -> Tuple[str, str]:
    """
    Split a location reference into (kind, target)

    kind is "class" for java:test:// and java:suite:// references (target
    is the fully qualified class name) and "path" for file:// references
    and plain paths (target is the path without any :line suffix).
    """
    ref = location_ref.strip()
    for scheme in ("java:test://", "java:suite://"):
        if ref.startswith(scheme):
            target = ref[len(scheme):].split("/", 1)[0]
            return "class", target

    if ref.startswith("file://"):
        ref = ref[len("file://"):]

    head, sep, tail = ref.rpartition(":")
    if sep and tail.isdigit() and head:
        ref = head
    return "path", ref


class FileDocumentAccess:
    """
    File-system document host

    Maps location references onto files under the workspace, keeps one
    buffer per file for the session, and writes files back on commit when
    autosave is on. A read-only host never writes; dry runs use one.
    """

    def __init__(
        self,
        workspace: str,
        source_roots: Sequence[str] = (),
        encoding: str = "utf-8",
        autosave: bool = True,
        read_only: bool = False,
    ):
        self.workspace = Path(workspace).resolve()
        self.source_roots = list(source_roots)
        self.encoding = encoding
        self.read_only = read_only
        self.autosave = autosave and not read_only
        self._documents: Dict[Path, TextDocument] = {}

    def open_document(self, location_ref: str) -> TextDocument:
        path = self.resolve_location(location_ref)

        document = self._documents.get(path)
        if document is None:
            try:
                with open(path, encoding=self.encoding, newline="") as handle:
                    text = handle.read()
            except (OSError, UnicodeDecodeError) as e:
                raise LocationResolutionError(f"Cannot read {path}: {e}") from e

            document = TextDocument(text, path)
            if self.autosave:
                document.add_commit_listener(self._save)
            self._documents[path] = document

        return document

    def resolve_location(self, location_ref: str) -> Path:
        """Resolve a location reference to an existing file inside the workspace"""
        kind, target = parse_location_ref(location_ref)
        if not target:
            raise LocationResolutionError(f"Empty location reference: {location_ref!r}")

        if kind == "class":
            path = self._find_class_source(target)
        else:
            path = self._within_workspace(target)
            if not path.is_file():
                path = None

        if path is None:
            raise LocationResolutionError(f"No source file for {location_ref}")
        return path

    def modified_documents(self) -> List[TextDocument]:
        return [doc for doc in self._documents.values() if doc.modified]

    def save_all(self) -> List[Path]:
        if self.read_only:
            logger.debug("document.save_skipped", pending=len(self.modified_documents()))
            return []
        saved = []
        for document in self.modified_documents():
            self._save(document)
            saved.append(document.path)
        return saved

    def _save(self, document: TextDocument):
        if document.path is None:
            return
        with open(document.path, "w", encoding=self.encoding, newline="") as handle:
            handle.write(document.text)
        document.modified = False
        logger.debug("document.saved", path=str(document.path))

    def _within_workspace(self, file_path: str) -> Path:
        candidate = Path(file_path)
        if not candidate.is_absolute():
            candidate = self.workspace / candidate
        resolved = candidate.resolve()
        if resolved != self.workspace and self.workspace not in resolved.parents:
            raise LocationResolutionError(f"Path escapes workspace: {file_path}")
        return resolved

    def _find_class_source(self, class_name: str) -> Optional[Path]:
        outer = class_name.split("$", 1)[0]
        relative = outer.replace(".", "/")

        for root in [*self.source_roots, "."]:
            for ext in SOURCE_EXTENSIONS:
                candidate = self._within_workspace(os.path.join(root, relative + ext))
                if candidate.is_file():
                    return candidate

        # Fall back to a walk; the package path must match, and a bare file
        # name is only trusted when it is unique in the workspace
        package_suffixes = tuple("/" + relative + ext for ext in SOURCE_EXTENSIONS)
        simple_names = {outer.rsplit(".", 1)[-1] + ext for ext in SOURCE_EXTENSIONS}
        by_name: List[Path] = []
        for root, dirs, files in os.walk(self.workspace):
            dirs[:] = sorted(
                d for d in dirs if not d.startswith(".") and d not in SKIPPED_DIRS
            )
            for name in sorted(files):
                if name not in simple_names:
                    continue
                path = Path(root, name).resolve()
                if ("/" + path.relative_to(self.workspace).as_posix()).endswith(
                    package_suffixes
                ):
                    return path
                by_name.append(path)

        if len(by_name) == 1:
            return by_name[0]
        if by_name:
            logger.debug(
                "document.ambiguous_class",
                class_name=class_name,
                candidates=[str(p) for p in by_name],
            )
        return None

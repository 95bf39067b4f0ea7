"""
User-invocable "fix failed tests" action.

The host passes the workspace, the selected test results and the run
configuration explicitly; nothing is read from ambient selection state.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from ..core.config import Settings, settings as default_settings
from .document_access import DocumentAccess, FileDocumentAccess
from .failure_patcher import FailurePatcher
from .fixer_types import FixReport, RunConfiguration
from .rerun_trigger import CommandRunTrigger, RunTrigger
from .result_sources import TestResultSource

logger = structlog.get_logger(__name__)


@dataclass
class ActionContext:
    workspace: Optional[str]
    result_source: Optional[TestResultSource]
    configuration: Optional[RunConfiguration] = None


class FixFailedTestsAction:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        run_trigger: Optional[RunTrigger] = None,
        documents: Optional[DocumentAccess] = None,
    ):
        self.config = settings or default_settings
        self.run_trigger = run_trigger or CommandRunTrigger()
        self.documents = documents

    def is_available(self, context: ActionContext) -> bool:
        """Enabled only with an open workspace and a selected test result view"""
        return (
            context.workspace is not None
            and Path(context.workspace).is_dir()
            and context.result_source is not None
        )

    def perform(self, context: ActionContext) -> Optional[FixReport]:
        if not self.is_available(context):
            logger.info("action.unavailable", workspace=context.workspace)
            return None

        documents = self.documents or FileDocumentAccess(
            context.workspace,
            source_roots=self.config.source_roots,
            encoding=self.config.file_encoding,
            autosave=self.config.autosave,
        )
        patcher = FailurePatcher(documents, self.run_trigger, self.config)
        return patcher.fix_failures(
            context.result_source.failed_tests(), context.configuration
        )

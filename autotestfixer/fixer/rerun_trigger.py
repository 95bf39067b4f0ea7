"""
Re-run Triggers

Start a new execution of a run configuration after a successful patch.
Triggers are fire-and-forget: they hand the run off and never wait for
or inspect its result.
"""

import shlex
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol

import structlog

from ..core.errors import RunTriggerError
from .fixer_types import RunConfiguration

logger = structlog.get_logger(__name__)


class RunTrigger(Protocol):
    def trigger(self, configuration: Optional[RunConfiguration]) -> bool:
        """Start a run; False when there is nothing to run"""
        ...


class CommandRunTrigger:
    """Runs the configuration's command as a detached subprocess"""

    def __init__(self):
        self.processes: List[subprocess.Popen] = []

    def trigger(self, configuration: Optional[RunConfiguration]) -> bool:
        if configuration is None or not configuration.command.strip():
            logger.warning("rerun.no_configuration")
            return False

        try:
            args = shlex.split(configuration.command)
        except ValueError as e:
            raise RunTriggerError(
                f"Cannot parse command for '{configuration.name}': {e}"
            ) from e

        try:
            process = subprocess.Popen(args, cwd=configuration.working_dir)
        except OSError as e:
            raise RunTriggerError(
                f"Cannot start '{configuration.name}' ({configuration.command}): {e}"
            ) from e

        self.processes.append(process)
        logger.info(
            "rerun.started",
            configuration=configuration.name,
            command=configuration.command,
            pid=process.pid,
        )
        return True


@dataclass
class RecordingRunTrigger:
    """Records requested runs without executing anything (dry runs)"""

    requests: List[RunConfiguration] = field(default_factory=list)
    requested_at: List[datetime] = field(default_factory=list)

    def trigger(self, configuration: Optional[RunConfiguration]) -> bool:
        if configuration is None:
            return False
        self.requests.append(configuration)
        self.requested_at.append(datetime.now())
        logger.info("rerun.recorded", configuration=configuration.name)
        return True

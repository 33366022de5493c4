import logging
import time
from enum import Enum
from typing import Callable, List, Optional
from .classifier import classify
from .conf import MIN_VOLUME_API_VERSION, RunConfig
from .errors import FatalError
from .executor import Executor
from .inventory import DockerInventory
from .records import RunReport

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    INIT = "init"
    CHECKING = "checking"
    CLASSIFYING = "classifying"
    EXECUTING = "executing"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


class RunController:
    """
    Orchestrates one cleanup pass: check, classify, execute, report.

    The run moves through INIT, CHECKING, CLASSIFYING, EXECUTING, REPORTING
    and DONE. A fatal error in CHECKING, CLASSIFYING or EXECUTING moves it to
    FAILED and is re-raised to the caller. When the reachability check fails
    nothing is listed and nothing is removed.

    Args:
        config (RunConfig): Flags of the run.
        connect (Callable[[RunConfig], DockerInventory]): Opens the runtime accessor.
            Defaults to DockerInventory.connect.

    Attributes:
        state (RunState): Current state of the run.
        history (List[RunState]): Every state the run went through, in order.

    Example:
        >>> controller = RunController(RunConfig(dry_run=True))
        >>> report = controller.run()
        >>> controller.state
        <RunState.DONE: 'done'>
    """

    def __init__(
        self,
        config: RunConfig,
        connect: Optional[Callable[[RunConfig], DockerInventory]] = None,
    ):
        self._config = config
        self._connect = connect or DockerInventory.connect
        self.state: RunState = RunState.INIT
        self.history: List[RunState] = [RunState.INIT]

    @property
    def config(self) -> RunConfig:
        return self._config

    def _transition(self, state: RunState):
        logger.debug(f"Run state {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _volume_cleanup_enabled(self, accessor) -> bool:
        """
        Decide whether the volume sweep runs.

        Raises:
            RuntimeVersionUnsupported: If volume support is required and missing.
        """
        if not self._config.wants_volume_cleanup:
            return False
        if accessor.supports_volumes():
            return True
        if self._config.require_volume_support:
            accessor.require_volume_support()
        logger.warning(
            f"Runtime API {accessor.api_version} is below {MIN_VOLUME_API_VERSION}: "
            f"skipping volume cleanup, containers and images are still cleaned"
        )
        return False

    def run(self) -> RunReport:
        """
        Run the cleanup pass.

        Returns:
            RunReport: The finished report, with the elapsed time set.

        Raises:
            FatalError: If the runtime is unreachable, too old while volume support is
                required, or lost mid-batch.
        """
        started = time.monotonic()
        logger.info(f"Starting the clean-up process ({self._config.describe()})")
        self._transition(RunState.CHECKING)
        try:
            accessor = self._connect(self._config)
        except FatalError as e:
            self._fail(e)
            raise
        try:
            volumes = self._volume_cleanup_enabled(accessor)

            self._transition(RunState.CLASSIFYING)
            inventory = accessor.snapshot(include_volumes=volumes)
            candidates = classify(inventory, self._config.mode)

            self._transition(RunState.EXECUTING)
            report = RunReport(
                mode=self._config.mode,
                dry_run=self._config.dry_run,
                volumes_skipped=self._config.wants_volume_cleanup and not volumes,
            )
            Executor(accessor, self._config).execute(candidates, report=report)

            self._transition(RunState.REPORTING)
            report.elapsed = time.monotonic() - started
            for line in report.summary_lines():
                logger.info(line)
            logger.info(f"Clean-up finished in {report.elapsed:.2f}s")
            logger.debug(f"Run report: {report.model_dump_json()}")
            self._transition(RunState.DONE)
            return report
        except FatalError as e:
            self._fail(e)
            raise
        finally:
            accessor.close()

    def _fail(self, error: FatalError):
        logger.error(f"Clean-up aborted while {self.state.value}: {error}")
        self._transition(RunState.FAILED)


def run(config: RunConfig, connect=None) -> RunReport:
    """Run one cleanup pass with `config`. See RunController.run."""
    return RunController(config, connect=connect).run()

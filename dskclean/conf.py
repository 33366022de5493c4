from enum import Enum
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field

# Docker Engine API 1.21 (Docker 1.9) introduced the /volumes endpoints.
MIN_VOLUME_API_VERSION = "1.21"
DEFAULT_LOG_FILE = "clean.log"
DEFAULT_SOCKET_PATH = "/var/run/docker.sock"


class CleanMode(str, Enum):
    """
    Cleanup scope for a run.

    CONSERVATIVE removes exited/dead containers and dangling images only.
    DEEP additionally removes every unreferenced image (tagged or not) and
    every dangling volume.
    """

    CONSERVATIVE = "conservative"
    DEEP = "deep"


class RunConfig(BaseModel):
    """
    RunConfig carries every flag of a single cleanup run.

    The model is frozen: it is built once from the command line and handed to
    the controller, classifier and executor unchanged.

    Attributes:
        mode (CleanMode): Cleanup scope. Default is conservative.
        dry_run (bool): Only report what would be removed.
        quiet (bool): Suppress console echo; the run log is still written.
        verbose (bool): Echo debug-level detail to the console.
        require_volume_support (bool): Treat an API level without volume support as fatal
            instead of skipping the volume sweep.
        log_file (Path): Plain-text run log, truncated at the start of every run.
        check_timeout (float): Seconds allowed for the reachability check.
        socket_path (Path): Local runtime socket checked before connecting.

    Example:
        >>> config = RunConfig(mode=CleanMode.DEEP, dry_run=True)
        >>> config.wants_volume_cleanup
        True
    """

    model_config = ConfigDict(frozen=True)

    mode: CleanMode = Field(
        default=CleanMode.CONSERVATIVE,
        title="Mode",
        description="Cleanup scope, conservative or deep",
    )
    dry_run: bool = Field(
        default=False,
        title="Dry Run",
        description="List the resources that would be removed without removing them",
    )
    quiet: bool = Field(
        default=False, title="Quiet", description="Suppress console output"
    )
    verbose: bool = Field(
        default=False, title="Verbose", description="Echo debug output to the console"
    )
    require_volume_support: bool = Field(
        default=False,
        title="Require Volume Support",
        description="Abort instead of skipping volume cleanup when the API level is too old",
    )
    log_file: Path = Field(
        default=Path(DEFAULT_LOG_FILE),
        title="Log File",
        description="Run log, recreated at the start of every run",
    )
    check_timeout: float = Field(
        default=10.0,
        gt=0,
        title="Check Timeout",
        description="Seconds to wait for the runtime to answer the reachability check",
    )
    socket_path: Path = Field(
        default=Path(DEFAULT_SOCKET_PATH),
        title="Socket Path",
        description="Runtime API socket that must exist when DOCKER_HOST is not set",
    )

    @property
    def wants_volume_cleanup(self) -> bool:
        return self.mode is CleanMode.DEEP

    def describe(self) -> str:
        """
        One-line description of the run flags, used in the run log.

        Example:
            >>> RunConfig().describe()
            'mode=conservative dry_run=False'
        """
        return f"mode={self.mode.value} dry_run={self.dry_run}"

from typing import Optional


class CleanupError(Exception):
    """Base class for every error raised by dskclean."""


class FatalError(CleanupError):
    """
    An error that aborts the run.

    Attributes:
        report: The partial RunReport when the run was aborted mid-batch, otherwise None.
    """

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report


class RuntimeUnreachable(FatalError):
    """The runtime socket is absent, refused the connection or stopped answering."""


class RuntimeVersionUnsupported(FatalError):
    """The runtime API level is below the one required for volume operations."""

    def __init__(self, message: str, api_version: Optional[str] = None, report=None):
        super().__init__(message, report=report)
        self.api_version = api_version


class ResourceError(CleanupError):
    """A removal of a single resource did not happen. Never aborts the run."""

    def __init__(self, message: str, ref: str):
        super().__init__(message)
        self.ref = ref


class ResourceBusy(ResourceError):
    """The resource is still referenced by another one."""


class ResourceNotFound(ResourceError):
    """The resource no longer exists."""


class RemovalFailed(ResourceError):
    """The runtime rejected the removal for any other reason."""

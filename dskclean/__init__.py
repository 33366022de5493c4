from .conf import CleanMode, RunConfig
from .records import (
    ContainerRecord,
    ContainerState,
    DeletionCandidate,
    ImageRecord,
    Inventory,
    Outcome,
    ResourceKind,
    RunReport,
    VolumeRecord,
)
from .classifier import classify
from .executor import Executor
from .inventory import DockerInventory
from .controller import RunController, RunState


__all__ = [
    "CleanMode",
    "RunConfig",
    "ContainerRecord",
    "ContainerState",
    "DeletionCandidate",
    "ImageRecord",
    "Inventory",
    "Outcome",
    "ResourceKind",
    "RunReport",
    "VolumeRecord",
    "classify",
    "Executor",
    "DockerInventory",
    "RunController",
    "RunState",
]

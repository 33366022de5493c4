import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field
from .conf import CleanMode
from .string import format_memory, short_id


class ResourceKind(str, Enum):
    """Kinds of runtime resources, declared in removal order."""

    CONTAINER = "container"
    IMAGE = "image"
    VOLUME = "volume"

    @property
    def rank(self) -> int:
        return list(ResourceKind).index(self)

    @property
    def plural(self) -> str:
        return f"{self.value}s"


class ContainerState(str, Enum):
    CREATED = "created"
    RESTARTING = "restarting"
    RUNNING = "running"
    REMOVING = "removing"
    PAUSED = "paused"
    EXITED = "exited"
    DEAD = "dead"


class Outcome(str, Enum):
    REMOVED = "removed"
    WOULD_REMOVE = "would_remove"
    SKIPPED = "skipped"
    FAILED = "failed"


class ContainerRecord(BaseModel):
    """
    Snapshot of one container.

    Attributes:
        id (str): Full container id.
        name (str): Container name without the leading slash.
        state (ContainerState): Lifecycle state at snapshot time.
        created_at (Optional[datetime.datetime]): Creation time in UTC.
        image_id (str): Id of the image backing the container.
        volume_names (Tuple[str, ...]): Names of the volumes mounted into the container.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    state: ContainerState
    created_at: Optional[datetime.datetime] = None
    image_id: str = ""
    volume_names: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        if self.name:
            return f"{self.name} ({short_id(self.id)})"
        return short_id(self.id)


class ImageRecord(BaseModel):
    """
    Snapshot of one image.

    An image without repo tags that no listed image names as its parent is
    dangling.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    repo_tags: Tuple[str, ...] = ()
    created_at: Optional[datetime.datetime] = None
    parent_id: Optional[str] = None
    size: int = 0

    @property
    def is_tagged(self) -> bool:
        return len(self.repo_tags) > 0

    @property
    def label(self) -> str:
        if self.repo_tags:
            return f"{', '.join(self.repo_tags)} ({short_id(self.id)})"
        return short_id(self.id)


class VolumeRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    is_named: bool = False
    dangling: bool = False

    @property
    def id(self) -> str:
        return self.name

    @property
    def label(self) -> str:
        return self.name if self.is_named else short_id(self.name)


class Inventory(BaseModel):
    """
    A consistent snapshot of the runtime state taken once per run.

    Attributes:
        containers (Tuple[ContainerRecord, ...]): Every container, in discovery order.
        images (Tuple[ImageRecord, ...]): Every top-level image, in discovery order.
        volumes (Tuple[VolumeRecord, ...]): Every volume, empty when volumes were not queried.
        volumes_supported (bool): False when the runtime API is too old for volume operations.
    """

    model_config = ConfigDict(frozen=True)

    containers: Tuple[ContainerRecord, ...] = ()
    images: Tuple[ImageRecord, ...] = ()
    volumes: Tuple[VolumeRecord, ...] = ()
    volumes_supported: bool = True


class DeletionCandidate(BaseModel):
    """
    A resource the classifier decided to delete.

    Attributes:
        kind (ResourceKind): Resource kind.
        ref (str): Id (or volume name) passed to the runtime on removal.
        label (str): Human-readable name for logs.
        reason (str): Why the resource was selected.
        remove_volumes (bool): Container removal also deletes the anonymous volumes
            the container owns.
        size (int): Bytes the removal is expected to free, 0 when unknown.
        force (bool): Image removal also drops every repository tag the image carries.
    """

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    ref: str
    label: str = ""
    reason: str = ""
    remove_volumes: bool = False
    size: int = 0
    force: bool = False


class ResourceOutcome(BaseModel):
    kind: ResourceKind
    ref: str
    label: str = ""
    reason: str = ""
    outcome: Outcome
    detail: str = ""


class KindCounts(BaseModel):
    removed: int = 0
    would_remove: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def candidates(self) -> int:
        return self.removed + self.would_remove + self.skipped + self.failed

    def add(self, outcome: Outcome):
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)


def _empty_counts() -> Dict[ResourceKind, KindCounts]:
    return {kind: KindCounts() for kind in ResourceKind}


class RunReport(BaseModel):
    """
    Outcome of one cleanup run.

    The executor fills it in candidate by candidate, the controller sets the
    elapsed time when the run finishes. `model_dump_json()` gives the
    machine-readable form, `summary_lines()` the human one.

    Example:
        >>> report = RunReport(mode=CleanMode.CONSERVATIVE, dry_run=True)
        >>> report.summary_lines()[0]
        'containers: 0 would be removed'
    """

    mode: CleanMode
    dry_run: bool = False
    counts: Dict[ResourceKind, KindCounts] = Field(default_factory=_empty_counts)
    outcomes: List[ResourceOutcome] = Field(default_factory=list)
    reclaimed_bytes: int = 0
    volumes_skipped: bool = False
    elapsed: float = 0.0

    def counts_for(self, kind: ResourceKind) -> KindCounts:
        return self.counts[kind]

    def record(
        self, candidate: DeletionCandidate, outcome: Outcome, detail: str = ""
    ) -> ResourceOutcome:
        entry = ResourceOutcome(
            kind=candidate.kind,
            ref=candidate.ref,
            label=candidate.label,
            reason=candidate.reason,
            outcome=outcome,
            detail=detail,
        )
        self.outcomes.append(entry)
        self.counts[candidate.kind].add(outcome)
        if outcome in (Outcome.REMOVED, Outcome.WOULD_REMOVE):
            self.reclaimed_bytes += candidate.size
        return entry

    def total(self, outcome: Outcome) -> int:
        return sum(getattr(c, outcome.value) for c in self.counts.values())

    def summary_lines(self) -> List[str]:
        lines = []
        for kind in ResourceKind:
            counts = self.counts[kind]
            if kind is ResourceKind.VOLUME and self.volumes_skipped:
                lines.append(f"{kind.plural}: not cleaned (runtime API too old)")
                continue
            if self.dry_run:
                lines.append(f"{kind.plural}: {counts.would_remove} would be removed")
            else:
                lines.append(
                    f"{kind.plural}: {counts.removed} removed, "
                    f"{counts.skipped} skipped, {counts.failed} failed"
                )
        verb = "could be reclaimed" if self.dry_run else "reclaimed"
        lines.append(
            f"Estimated image space {verb}: {format_memory(self.reclaimed_bytes)}"
        )
        return lines

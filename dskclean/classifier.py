"""
Decide which resources of an inventory snapshot are safe to delete.

`classify` is a pure function: it never talks to the runtime and returns the
same candidates, in the same order, for the same snapshot and mode. The
result lists every container candidate first, then images, then volumes,
because a container holds references that block removal of its image and
volumes.
"""

import logging
from typing import List, Sequence, Set
from .conf import CleanMode
from .records import (
    ContainerRecord,
    ContainerState,
    DeletionCandidate,
    ImageRecord,
    Inventory,
    ResourceKind,
    VolumeRecord,
)

logger = logging.getLogger(__name__)

# "created" containers were never started and are left for manual review.
REMOVABLE_STATES = frozenset({ContainerState.EXITED, ContainerState.DEAD})


def container_candidates(
    containers: Sequence[ContainerRecord], mode: CleanMode
) -> List[DeletionCandidate]:
    cascade = mode is CleanMode.DEEP
    return [
        DeletionCandidate(
            kind=ResourceKind.CONTAINER,
            ref=c.id,
            label=c.label,
            reason=f"container is {c.state.value}",
            remove_volumes=cascade,
        )
        for c in containers
        if c.state in REMOVABLE_STATES
    ]


def surviving_image_ids(
    containers: Sequence[ContainerRecord], removed: Set[str]
) -> Set[str]:
    """Image ids still referenced once the container candidates are gone."""
    return {c.image_id for c in containers if c.id not in removed and c.image_id}


def dangling_images(images: Sequence[ImageRecord]) -> List[ImageRecord]:
    """
    Images with no repo tags that no other listed image depends on.

    Example:
        >>> base = ImageRecord(id="sha256:a")
        >>> child = ImageRecord(id="sha256:b", parent_id="sha256:a", repo_tags=("app:1",))
        >>> [i.id for i in dangling_images([base, child])]
        []
    """
    parents = {i.parent_id for i in images if i.parent_id}
    return [i for i in images if not i.is_tagged and i.id not in parents]


def image_candidates(
    images: Sequence[ImageRecord],
    containers: Sequence[ContainerRecord],
    removed: Set[str],
    mode: CleanMode,
) -> List[DeletionCandidate]:
    """
    Deep mode takes every image no surviving container uses. Conservative mode
    takes dangling images that no container of the snapshot uses at all, so
    an image backing a container is never touched even when the container
    itself is a candidate.
    """
    if mode is CleanMode.DEEP:
        referenced = surviving_image_ids(containers, removed)
        selected = [i for i in images if i.id not in referenced]
    else:
        referenced = surviving_image_ids(containers, set())
        selected = [i for i in dangling_images(images) if i.id not in referenced]
    candidates = []
    for image in selected:
        reason = "image is dangling" if not image.is_tagged else "image is unused"
        # Removing by id is refused while several repositories tag the image.
        force = mode is CleanMode.DEEP and len(image.repo_tags) > 1
        candidates.append(
            DeletionCandidate(
                kind=ResourceKind.IMAGE,
                ref=image.id,
                label=image.label,
                reason=reason,
                size=image.size,
                force=force,
            )
        )
    return candidates


def volume_candidates(
    volumes: Sequence[VolumeRecord],
    containers: Sequence[ContainerRecord],
    mode: CleanMode,
) -> List[DeletionCandidate]:
    if mode is not CleanMode.DEEP:
        return []
    # The runtime flag is cross-checked against the mounts of the snapshot.
    mounted = {name for c in containers for name in c.volume_names}
    return [
        DeletionCandidate(
            kind=ResourceKind.VOLUME,
            ref=v.name,
            label=v.label,
            reason="volume is dangling",
        )
        for v in volumes
        if v.dangling and v.name not in mounted
    ]


def classify(inventory: Inventory, mode: CleanMode) -> List[DeletionCandidate]:
    """
    Compute the deletion candidates of a snapshot.

    Conservative mode selects exited or dead containers and the dangling images
    no container uses.
    Deep mode selects the same containers, every image no surviving container
    uses, and every dangling volume.

    Args:
        inventory (Inventory): The runtime snapshot.
        mode (CleanMode): The cleanup scope.

    Returns:
        List[DeletionCandidate]: Containers, then images, then volumes, each kind
        in discovery order.

    Example:
        >>> classify(Inventory(), CleanMode.DEEP)
        []
    """
    mode = CleanMode(mode)
    containers = container_candidates(inventory.containers, mode)
    removed = {c.ref for c in containers}
    images = image_candidates(inventory.images, inventory.containers, removed, mode)
    volumes = volume_candidates(inventory.volumes, inventory.containers, mode)
    logger.info(
        f"Classified {len(containers)} containers, {len(images)} images "
        f"and {len(volumes)} volumes for removal ({mode.value} mode)"
    )
    return containers + images + volumes

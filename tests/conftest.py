import logging
import random
import pytest
from dskclean.errors import RuntimeVersionUnsupported
from dskclean.records import (
    ContainerRecord,
    ContainerState,
    ImageRecord,
    Inventory,
    VolumeRecord,
)


class FakeAccessor:
    """In-memory stand-in for DockerInventory that records every removal."""

    def __init__(self, inventory=None, api_version="1.43", supported=True, errors=None):
        self.inventory = inventory or Inventory()
        self.api_version = api_version
        self._supported = supported
        self.errors = errors or {}
        self.calls = []
        self.forced = []
        self.snapshot_calls = []
        self.closed = False

    def supports_volumes(self):
        return self._supported

    def require_volume_support(self):
        if not self._supported:
            raise RuntimeVersionUnsupported(
                f"Runtime API {self.api_version} is too old", api_version=self.api_version
            )

    def snapshot(self, include_volumes=True):
        self.snapshot_calls.append(include_volumes)
        volumes = self.inventory.volumes if include_volumes else ()
        return self.inventory.model_copy(
            update={"volumes": volumes, "volumes_supported": self._supported}
        )

    def remove(self, kind, ref, remove_volumes=False, force=False):
        self.calls.append((kind, ref, remove_volumes))
        if force:
            self.forced.append(ref)
        error = self.errors.get(ref)
        if error is not None:
            raise error

    def close(self):
        self.closed = True


@pytest.fixture
def container():
    def _container(cid, state="exited", image_id="", **kwargs):
        return ContainerRecord(
            id=cid, state=ContainerState(state), image_id=image_id, **kwargs
        )

    return _container


@pytest.fixture
def image():
    def _image(iid, tags=(), parent_id=None, size=0):
        return ImageRecord(id=iid, repo_tags=tuple(tags), parent_id=parent_id, size=size)

    return _image


@pytest.fixture
def volume():
    def _volume(name, dangling=True, is_named=True):
        return VolumeRecord(name=name, dangling=dangling, is_named=is_named)

    return _volume


@pytest.fixture
def scenario_inventory(container, image):
    """One exited container using tagged image X, and untagged image Y nobody uses."""
    return Inventory(
        containers=[container("c1", state="exited", image_id="sha256:x")],
        images=[image("sha256:y"), image("sha256:x", tags=["app:latest"])],
    )


@pytest.fixture
def fake_accessor():
    return FakeAccessor


def random_inventory(seed: int) -> Inventory:
    """Build a varied but reproducible inventory for property checks."""
    rng = random.Random(seed)
    images = []
    for i in range(rng.randint(0, 8)):
        tags = (f"repo{i}:latest",) if rng.random() < 0.5 else ()
        parent = images[rng.randrange(len(images))].id if images and rng.random() < 0.3 else None
        images.append(ImageRecord(id=f"sha256:{i:02d}", repo_tags=tags, parent_id=parent))
    states = list(ContainerState)
    volumes = [
        VolumeRecord(name=f"vol{i}", dangling=rng.random() < 0.5, is_named=rng.random() < 0.5)
        for i in range(rng.randint(0, 5))
    ]
    containers = []
    for i in range(rng.randint(0, 8)):
        image_id = images[rng.randrange(len(images))].id if images else ""
        mounts = tuple(
            v.name for v in volumes if not v.dangling and rng.random() < 0.5
        )
        containers.append(
            ContainerRecord(
                id=f"c{i}",
                state=rng.choice(states),
                image_id=image_id,
                volume_names=mounts,
            )
        )
    return Inventory(containers=containers, images=images, volumes=volumes)


@pytest.fixture
def inventory_factory():
    return random_inventory


@pytest.fixture(autouse=True)
def reset_package_logger():
    """prepare_log() detaches the package logger from root; undo it after each test."""
    yield
    logger = logging.getLogger("dskclean")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)

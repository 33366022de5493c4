import logging
import os
import re
import docker
import docker.constants
import docker.errors
import docker.utils
from typing import Iterable, List, Optional, Set
from .conf import MIN_VOLUME_API_VERSION, RunConfig
from .errors import (
    RemovalFailed,
    ResourceBusy,
    ResourceNotFound,
    RuntimeUnreachable,
    RuntimeVersionUnsupported,
)
from .records import (
    ContainerRecord,
    ContainerState,
    ImageRecord,
    Inventory,
    ResourceKind,
    VolumeRecord,
)
from .string import short_id
from .timedate import parse_runtime_timestamp
from .tools.decorator import CONNECTION_ERRORS, check_instance_variable, runtime_query

logger = logging.getLogger(__name__)

ANONYMOUS_VOLUME_LABEL = "com.docker.volume.anonymous"
_GENERATED_VOLUME_NAME = re.compile(r"^[0-9a-f]{64}$")


def is_named_volume(name: str, labels: Optional[dict] = None) -> bool:
    """
    Check whether a volume was given an explicit name.

    Anonymous volumes are labelled by recent engines and, on older ones, carry
    a generated 64 character hex name.

    Example:
        >>> is_named_volume("pgdata")
        True
        >>> is_named_volume("a" * 64)
        False
    """
    if labels and ANONYMOUS_VOLUME_LABEL in labels:
        return False
    return _GENERATED_VOLUME_NAME.match(name or "") is None


class DockerInventory:
    """
    Read and remove containers, images and volumes through the Docker Engine API.

    The instance owns the docker-py client for the length of one run. Listing
    methods return immutable records; `remove` is the only destructive call and
    translates docker errors into the dskclean error taxonomy.

    Attributes:
        _client (docker.DockerClient): The Docker client instance, None once closed.
        _api_version (Optional[str]): API version negotiated with the daemon.

    Example:
        >>> inventory = DockerInventory.connect(RunConfig())
        >>> snapshot = inventory.snapshot(include_volumes=False)
        >>> inventory.close()
    """

    def __init__(
        self,
        client: Optional[docker.DockerClient] = None,
        api_version: Optional[str] = None,
    ):
        self._client: Optional[docker.DockerClient] = client or docker.from_env()
        self._api_version: Optional[str] = api_version

    @classmethod
    def connect(cls, config: RunConfig) -> "DockerInventory":
        """
        Verify the runtime is reachable and responsive, then open the run's client.

        The probe client uses `config.check_timeout` so that a hung daemon is
        told apart from an absent one. The working client has the default
        timeout, since removals of large images may legitimately take long.

        Args:
            config (RunConfig): Run configuration with the socket path and timeout.

        Returns:
            DockerInventory: An accessor bound to a live client.

        Raises:
            RuntimeUnreachable: If the socket is missing or the daemon does not answer.
        """
        if "DOCKER_HOST" not in os.environ and not config.socket_path.exists():
            logger.error(f"Cannot find {config.socket_path}")
            raise RuntimeUnreachable(
                f"Cannot find {config.socket_path}, this tool cannot be run from a container."
            )
        probe = cls._open_client(timeout=config.check_timeout)
        try:
            api_version = cls(probe).check()
        finally:
            probe.close()
        client = cls._open_client(version=api_version)
        return cls(client, api_version=api_version)

    @staticmethod
    def _open_client(
        timeout: Optional[float] = None, version: Optional[str] = None
    ) -> docker.DockerClient:
        kwargs = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        if version is not None:
            kwargs["version"] = version
        try:
            return docker.from_env(**kwargs)
        except docker.errors.InvalidVersion as e:
            # docker-py refuses daemons older than its own floor before any call is made.
            logger.error(
                f"Runtime API is below {docker.constants.MINIMUM_DOCKER_API_VERSION}, "
                f"the oldest docker-py can talk to: {e}"
            )
            raise RuntimeVersionUnsupported(
                f"Runtime API is below {docker.constants.MINIMUM_DOCKER_API_VERSION} "
                f"and cannot be cleaned: {e}",
                api_version=version,
            ) from e
        except CONNECTION_ERRORS as e:
            raise RuntimeUnreachable(f"Cannot connect to the runtime: {e}") from e
        except docker.errors.DockerException as e:
            raise RuntimeUnreachable(
                f"Something is wrong with docker. Try running as root? ({e})"
            ) from e

    @property
    def api_version(self) -> Optional[str]:
        return self._api_version

    @check_instance_variable("_client")
    @runtime_query("check the runtime")
    def check(self) -> str:
        """
        Run the liveness call and read the daemon's API version.

        Returns:
            str: The API version reported by the daemon.

        Raises:
            RuntimeUnreachable: If the daemon does not answer the ping.
        """
        self._client.ping()
        version = self._client.version()
        self._api_version = version.get("ApiVersion") or self._client.api.api_version
        logger.info(
            f"docker is working and responsive "
            f"(engine {version.get('Version', 'unknown')}, API {self._api_version})"
        )
        return self._api_version

    def supports_volumes(self) -> bool:
        if self._api_version is None:
            return True
        return not docker.utils.version_lt(self._api_version, MIN_VOLUME_API_VERSION)

    def require_volume_support(self):
        """
        Raises:
            RuntimeVersionUnsupported: If the API level is below MIN_VOLUME_API_VERSION.
        """
        if not self.supports_volumes():
            raise RuntimeVersionUnsupported(
                f"Runtime API {self._api_version} is below {MIN_VOLUME_API_VERSION}, "
                f"volume operations are unavailable",
                api_version=self._api_version,
            )

    @check_instance_variable("_client")
    @runtime_query("list containers")
    def list_containers(
        self, states: Optional[Iterable[ContainerState]] = None
    ) -> List[ContainerRecord]:
        """
        List containers in every state, optionally narrowed by lifecycle state.

        Args:
            states (Optional[Iterable[ContainerState]]): Only return containers in these states.

        Returns:
            List[ContainerRecord]: Container snapshots in the order the runtime lists them.
        """
        filters = None
        if states is not None:
            filters = {"status": [ContainerState(s).value for s in states]}
        containers = self._client.containers.list(
            all=True, filters=filters, ignore_removed=True
        )
        records = [self._container_record(c) for c in containers]
        logger.debug(f"Found {len(records)} containers")
        return records

    @staticmethod
    def _container_record(container) -> ContainerRecord:
        attrs = container.attrs or {}
        status = container.status
        try:
            state = ContainerState(status)
        except ValueError:
            # Unknown states are treated as live so they are never removed.
            logger.warning(
                f"Container {short_id(container.id)} has unknown state '{status}'"
            )
            state = ContainerState.RUNNING
        mounts = attrs.get("Mounts") or []
        volume_names = tuple(
            m["Name"] for m in mounts if m.get("Type") == "volume" and m.get("Name")
        )
        return ContainerRecord(
            id=container.id,
            name=(container.name or "").lstrip("/"),
            state=state,
            created_at=parse_runtime_timestamp(attrs.get("Created")),
            image_id=attrs.get("Image") or "",
            volume_names=volume_names,
        )

    @check_instance_variable("_client")
    @runtime_query("list images")
    def list_images(self, dangling_only: bool = False) -> List[ImageRecord]:
        """
        List top-level images, as `docker images` shows them.

        Args:
            dangling_only (bool): Only return images the runtime itself reports as dangling.

        Returns:
            List[ImageRecord]: Image snapshots in the order the runtime lists them.
        """
        filters = {"dangling": True} if dangling_only else None
        images = self._client.images.list(filters=filters)
        records = []
        for image in images:
            attrs = image.attrs or {}
            records.append(
                ImageRecord(
                    id=image.id,
                    repo_tags=tuple(image.tags),
                    created_at=parse_runtime_timestamp(attrs.get("Created")),
                    parent_id=attrs.get("Parent") or None,
                    size=attrs.get("Size") or 0,
                )
            )
        logger.debug(f"Found {len(records)} images")
        return records

    @check_instance_variable("_client")
    @runtime_query("list volumes")
    def list_volumes(self) -> List[VolumeRecord]:
        """
        List every volume and flag the ones the runtime reports as dangling.

        Raises:
            RuntimeVersionUnsupported: If the API level has no volume endpoints.
        """
        self.require_volume_support()
        dangling = {v.name for v in self._client.volumes.list(filters={"dangling": True})}
        records = []
        for volume in self._client.volumes.list():
            labels = (volume.attrs or {}).get("Labels") or {}
            records.append(
                VolumeRecord(
                    name=volume.name,
                    is_named=is_named_volume(volume.name, labels),
                    dangling=volume.name in dangling,
                )
            )
        logger.debug(f"Found {len(records)} volumes, {len(dangling)} dangling")
        return records

    def images_referenced_by_containers(self) -> Set[str]:
        """Ids of the images backing any existing container, whatever its state."""
        return {c.image_id for c in self.list_containers() if c.image_id}

    def snapshot(self, include_volumes: bool = True) -> Inventory:
        """
        Take one consistent inventory of the runtime.

        Args:
            include_volumes (bool): Query volumes as well. Ignored when the API level
                has no volume support.

        Returns:
            Inventory: The snapshot the classifier works on.
        """
        supported = self.supports_volumes()
        volumes = self.list_volumes() if include_volumes and supported else []
        return Inventory(
            containers=self.list_containers(),
            images=self.list_images(),
            volumes=volumes,
            volumes_supported=supported,
        )

    @check_instance_variable("_client")
    def remove(
        self,
        kind: ResourceKind,
        ref: str,
        remove_volumes: bool = False,
        force: bool = False,
    ):
        """
        Remove one resource. Irreversible for container layers and volume data.

        Args:
            kind (ResourceKind): Kind of the resource.
            ref (str): Container id, image id or volume name.
            remove_volumes (bool): For containers, also delete the anonymous volumes
                the container owns.
            force (bool): For images, untag every repository reference as well. Running
                containers still block the removal.

        Raises:
            ResourceNotFound: The resource is already gone.
            ResourceBusy: The resource is still referenced.
            RemovalFailed: The runtime refused for another reason.
            RuntimeUnreachable: The runtime stopped answering.
        """
        api = self._client.api
        try:
            if kind is ResourceKind.CONTAINER:
                api.remove_container(ref, v=remove_volumes)
            elif kind is ResourceKind.IMAGE:
                api.remove_image(ref, force=force)
            elif kind is ResourceKind.VOLUME:
                api.remove_volume(ref)
            else:
                raise ValueError(f"Unknown resource kind: {kind}")
        except docker.errors.NotFound as e:
            raise ResourceNotFound(f"{kind.value} {ref} is already gone", ref) from e
        except docker.errors.APIError as e:
            if e.status_code == 409:
                raise ResourceBusy(
                    f"{kind.value} {ref} is in use: {e.explanation}", ref
                ) from e
            raise RemovalFailed(
                f"Could not remove {kind.value} {ref}: {e.explanation or e}", ref
            ) from e
        except CONNECTION_ERRORS as e:
            raise RuntimeUnreachable(
                f"Runtime unreachable while removing {kind.value} {ref}"
            ) from e
        except docker.errors.DockerException as e:
            raise RuntimeUnreachable(
                f"Runtime failed while removing {kind.value} {ref}: {e}"
            ) from e
        logger.debug(f"Removed {kind.value} {ref}")

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

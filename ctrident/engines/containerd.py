"""
ctrident — containerd Container Engine

Attributes threads to containerd containers:
  1. match the thread's cgroups against containerd's layout
  2. list the container by id fragment over the runtime socket
  3. normalize the single match, merge cgroup resource limits
  4. publish + announce it through the cache, once per container

Every failure is an ordinary False; a thread we fail on today is simply
tried again on its next event.
"""

from typing import Callable, Optional

from ctrident.cache.container_cache import ContainerCache
from ctrident.cgroups.limits import (
    CgroupLimitsKey,
    CgroupLimitsValue,
    get_cgroup_resource_limits,
)
from ctrident.config import Settings, settings as default_settings
from ctrident.engines.base import ContainerEngine
from ctrident.logging_config import get_logger
from ctrident.runtime.containerd_client import ContainerdClient, rpc_error_message
from ctrident.runtime.sockets import iter_runtime_sockets
from ctrident.tracking.cgroup_match import match_cgroups
from ctrident.tracking.models import (
    CONTAINERD_CGROUP_LAYOUT,
    ContainerRecord,
    ContainerType,
    LookupState,
)
from ctrident.tracking.normalize import normalize_container
from ctrident.tracking.threadinfo import ThreadInfo

logger = get_logger("containerd")

LimitsFn = Callable[[CgroupLimitsKey], CgroupLimitsValue]


class ContainerdEngine(ContainerEngine):
    """
    containerd resolver.

    The runtime socket is discovered once, here. If no candidate answers
    the handshake the engine keeps no client and every resolve() is False for
    its lifetime.
    """

    def __init__(
        self,
        cache: ContainerCache,
        config: Optional[Settings] = None,
        client_factory: Callable[..., ContainerdClient] = ContainerdClient,
        limits_fn: Optional[LimitsFn] = None,
    ):
        super().__init__(cache)
        self._config = config or default_settings
        self._limits_fn = limits_fn or self._read_limits
        self._client: Optional[ContainerdClient] = None

        for socket_path in iter_runtime_sockets(
            self._config.CONTAINERD_SOCKETS, self._config.HOST_ROOT
        ):
            client = client_factory(
                socket_path,
                namespace=self._config.CONTAINERD_NAMESPACE,
                timeout_ms=self._config.RUNTIME_TIMEOUT_MS,
            )
            if client.is_ok():
                self._client = client
                logger.info("containerd: using runtime socket %s", socket_path)
                break

        if self._client is None:
            logger.debug("containerd: no usable runtime socket found")

    @property
    def client(self) -> Optional[ContainerdClient]:
        return self._client

    # ── Resolution ───────────────────────────────────────────

    def resolve(self, tinfo: ThreadInfo, query_os_for_missing_info: bool = False) -> bool:
        match = match_cgroups(tinfo.cgroups, CONTAINERD_CGROUP_LAYOUT)
        if match is None:
            return False

        if self._client is None:
            return False

        container = self._lookup(match.container_id)
        if container is None:
            return False

        tinfo.container_id = match.container_id

        limits = self._limits_fn(
            CgroupLimitsKey(
                container_id=container.id,
                cpu_cgroup=tinfo.get_cgroup("cpu"),
                mem_cgroup=tinfo.get_cgroup("memory"),
                cpuset_cgroup=tinfo.get_cgroup("cpuset"),
            )
        )
        container.memory_limit = limits.memory_limit
        container.cpu_shares = limits.cpu_shares
        container.cpu_quota = limits.cpu_quota
        container.cpu_period = limits.cpu_period
        container.cpuset_cpu_count = limits.cpuset_cpu_count

        if self.cache.should_lookup(container.id, ContainerType.containerd):
            container.name = container.id
            container.lookup_state = LookupState.successful
            self.cache.add_container(container, tinfo)
            self.cache.notify_new_container(container, tinfo)

        return True

    def _lookup(self, container_id: str) -> Optional[ContainerRecord]:
        """Fetch and normalize the one runtime record whose id contains container_id."""
        resp, error = self._client.list_by_id_fragment(container_id)
        if error is not None:
            logger.debug(
                "containerd (%s): ListContainers error: %s",
                container_id, rpc_error_message(error),
            )
            return None

        containers = resp.containers
        if len(containers) == 0:
            logger.debug("containerd (%s): container id has no match", container_id)
            return None
        if len(containers) > 1:
            logger.debug(
                "containerd (%s): container id has more than one match (%d)",
                container_id, len(containers),
            )
            return None

        return normalize_container(
            containers[0], container_id, self._config.LABEL_MAX_LENGTH
        )

    def _read_limits(self, key: CgroupLimitsKey) -> CgroupLimitsValue:
        return get_cgroup_resource_limits(
            key, self._config.HOST_ROOT + self._config.CGROUP_ROOT
        )

"""
ctrident — Container Metadata Model

The shared record every runtime resolver fills in, plus the small value
types that describe how a runtime lays out its cgroups.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum


# ── Enums ────────────────────────────────────────────────────


class ContainerType(str, Enum):
    docker = "docker"
    containerd = "containerd"
    cri_o = "cri-o"
    podman = "podman"


class LookupState(str, Enum):
    pending = "pending"
    successful = "successful"
    failed = "failed"


# ── Cgroup layouts ───────────────────────────────────────────

# Ordered (prefix, suffix) pairs; the container id sits in between.
CgroupLayout = tuple[tuple[str, str], ...]

CONTAINERD_CGROUP_LAYOUT: CgroupLayout = (("/default/", ""),)


# ── Records ──────────────────────────────────────────────────


@dataclass(frozen=True)
class MountEntry:
    """One bind/volume mount as reported by the runtime spec."""
    source: str
    destination: str
    mode: str = ""
    read_write: bool = True
    propagation: str = ""


@dataclass
class ContainerRecord:
    """
    Normalized container metadata.

    ``id`` is the (possibly truncated) id recovered from the cgroup path,
    ``full_id`` the one returned by the runtime. Resource limits default
    to 0, meaning "unknown / unlimited".
    """
    id: str = ""
    full_id: str = ""
    name: str = ""
    type: ContainerType = ContainerType.containerd
    image: str = ""
    image_repo: str = ""
    image_tag: str = ""
    image_digest: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    mounts: list[MountEntry] = field(default_factory=list)
    env: list[str] = field(default_factory=list)
    memory_limit: int = 0
    cpu_shares: int = 0
    cpu_quota: int = 0
    cpu_period: int = 0
    cpuset_cpu_count: int = 0
    lookup_state: LookupState = LookupState.pending

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        data["lookup_state"] = self.lookup_state.value
        return data

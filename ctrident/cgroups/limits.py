"""
ctrident — Cgroup Resource Limits

Reads a container's memory/cpu/cpuset limits straight from the cgroup
filesystem. cgroup v1 controller files are tried first, then the unified
(v2) equivalents found under the same relative path.

Every value is best effort: a missing or unreadable file leaves the
field at 0.
"""

import os
from dataclasses import dataclass

# Kernel reports "no memory limit" as a page-aligned LONG_MAX
_MEMORY_UNLIMITED = 0x7FFFFFFFFFFFF000


@dataclass(frozen=True)
class CgroupLimitsKey:
    container_id: str
    cpu_cgroup: str
    mem_cgroup: str
    cpuset_cgroup: str


@dataclass
class CgroupLimitsValue:
    memory_limit: int = 0
    cpu_shares: int = 0
    cpu_quota: int = 0
    cpu_period: int = 0
    cpuset_cpu_count: int = 0


def _read(cgroup_root: str, controller: str, cgroup: str, filename: str) -> str | None:
    """Read one cgroup file; v1 layout (<root>/<controller>/<cgroup>) first."""
    if not cgroup:
        return None
    rel = cgroup.lstrip("/")
    for base in (os.path.join(cgroup_root, controller, rel), os.path.join(cgroup_root, rel)):
        try:
            with open(os.path.join(base, filename)) as f:
                return f.read().strip()
        except (OSError, PermissionError):
            continue
    return None


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def count_cpuset_cpus(cpus: str) -> int:
    """Count CPUs in a cpuset list such as ``0-3,6`` (→ 5)."""
    count = 0
    for chunk in cpus.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        lo, sep, hi = chunk.partition("-")
        try:
            if sep:
                count += int(hi) - int(lo) + 1
            else:
                int(lo)
                count += 1
        except ValueError:
            return 0
    return count


def cpu_weight_to_shares(weight: int) -> int:
    """Map a cgroup v2 cpu.weight (1..10000) onto v1 cpu.shares (2..262144)."""
    return 2 + ((weight - 1) * 262142) // 9999


def _memory_limit(root: str, cgroup: str) -> int:
    limit = _to_int(_read(root, "memory", cgroup, "memory.limit_in_bytes"))
    if limit is None:
        # v2 uses "max" for unlimited, which does not parse
        limit = _to_int(_read(root, "memory", cgroup, "memory.max"))
    if limit is None or limit <= 0 or limit >= _MEMORY_UNLIMITED:
        return 0
    return limit


def _cpu_limits(root: str, cgroup: str, value: CgroupLimitsValue) -> None:
    shares = _to_int(_read(root, "cpu", cgroup, "cpu.shares"))
    if shares is None:
        weight = _to_int(_read(root, "cpu", cgroup, "cpu.weight"))
        if weight is not None and weight > 0:
            shares = cpu_weight_to_shares(weight)
    if shares is not None and shares > 0:
        value.cpu_shares = shares

    quota = _to_int(_read(root, "cpu", cgroup, "cpu.cfs_quota_us"))
    period = _to_int(_read(root, "cpu", cgroup, "cpu.cfs_period_us"))
    if quota is None and period is None:
        # v2: "<quota|max> <period>"
        raw = _read(root, "cpu", cgroup, "cpu.max")
        if raw:
            q, _, p = raw.partition(" ")
            quota, period = _to_int(q), _to_int(p)

    # -1 (v1) / "max" (v2) mean no quota
    if quota is not None and quota > 0:
        value.cpu_quota = quota
    if period is not None and period > 0:
        value.cpu_period = period


def _cpuset_count(root: str, cgroup: str) -> int:
    cpus = _read(root, "cpuset", cgroup, "cpuset.effective_cpus")
    if cpus is None:
        cpus = _read(root, "cpuset", cgroup, "cpuset.cpus.effective")
    return count_cpuset_cpus(cpus) if cpus else 0


def get_cgroup_resource_limits(
    key: CgroupLimitsKey, cgroup_root: str = "/sys/fs/cgroup"
) -> CgroupLimitsValue:
    """Collect resource limits for the cgroups named in key."""
    value = CgroupLimitsValue()
    value.memory_limit = _memory_limit(cgroup_root, key.mem_cgroup)
    _cpu_limits(cgroup_root, key.cpu_cgroup, value)
    value.cpuset_cpu_count = _cpuset_count(cgroup_root, key.cpuset_cgroup)
    return value

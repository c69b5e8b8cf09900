"""
ctrident — Per-Thread State

The slice of thread state a container resolver needs: which cgroups the
thread sits in, and where the resolved container id gets written back.
Populated from /proc/{pid}/cgroup.
"""

import os
from dataclasses import dataclass, field


@dataclass
class ThreadInfo:
    """A single observed thread and its cgroup membership."""
    tid: int
    pid: int = 0
    comm: str = ""
    # (subsystem, path) in /proc order; cgroup v2 uses subsystem ""
    cgroups: list[tuple[str, str]] = field(default_factory=list)
    container_id: str = ""

    def get_cgroup(self, subsystem: str) -> str:
        """
        Path of the cgroup for a controller.

        Falls back to the unified (v2) hierarchy when the controller has
        no dedicated v1 entry.
        """
        unified = ""
        for subsys, path in self.cgroups:
            if subsys == subsystem:
                return path
            if subsys == "" and not unified:
                unified = path
        return unified

    @classmethod
    def from_proc(cls, pid: int, proc_root: str = "/proc") -> "ThreadInfo":
        """Build a ThreadInfo for a live PID. Unreadable files yield empty fields."""
        base = os.path.join(proc_root, str(pid))
        return cls(
            tid=pid,
            pid=pid,
            comm=_read_comm(base),
            cgroups=_read_cgroups(base),
        )


def parse_cgroup_file(data: str) -> list[tuple[str, str]]:
    """
    Parse the contents of /proc/{pid}/cgroup.

    Lines look like ``4:cpu,cpuacct:/docker/abc`` (v1) or ``0::/system.slice``
    (v2). Each comma-separated controller becomes its own entry.
    """
    cgroups = []
    for line in data.splitlines():
        parts = line.strip().split(":", 2)
        if len(parts) != 3:
            continue
        _, controllers, path = parts
        if not controllers:
            cgroups.append(("", path))
            continue
        for subsys in controllers.split(","):
            # named hierarchies, e.g. name=systemd
            if subsys.startswith("name="):
                subsys = subsys[len("name="):]
            cgroups.append((subsys, path))
    return cgroups


def _read_cgroups(base: str) -> list[tuple[str, str]]:
    try:
        with open(os.path.join(base, "cgroup")) as f:
            return parse_cgroup_file(f.read())
    except (OSError, PermissionError):
        return []


def _read_comm(base: str) -> str:
    try:
        with open(os.path.join(base, "comm")) as f:
            return f.read().strip()
    except (OSError, PermissionError):
        return ""

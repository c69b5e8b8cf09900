"""
ctrident — Cgroup Path Matching

Recovers a container id from a thread's cgroup paths given the layout a
runtime uses, e.g. containerd puts tasks of its ``default`` namespace
under ``/default/<64 hex chars>``.

Matching is pure string work; it never touches the runtime. A thread
whose cgroups match no pattern is not ours and costs nothing further.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from ctrident.tracking.models import CgroupLayout

CONTAINER_ID_LENGTH = 64
REPORTED_CONTAINER_ID_LENGTH = 12

_CONTAINER_ID_RE = re.compile(r"[0-9a-fA-F]{%d}" % CONTAINER_ID_LENGTH)


@dataclass(frozen=True)
class CgroupMatch:
    container_id: str
    cgroup: str


def match_container_id(cgroup: str, layout: CgroupLayout) -> Optional[str]:
    """
    Return the reported (truncated) container id for one cgroup path.

    For each (prefix, suffix) pair the id starts after the last
    occurrence of prefix and ends at the last occurrence of suffix, or
    at the end of the path when suffix is empty. First pattern wins.
    """
    for prefix, suffix in layout:
        start = cgroup.rfind(prefix)
        if start == -1:
            continue
        start += len(prefix)

        if suffix:
            end = cgroup.rfind(suffix, start)
            if end == -1:
                continue
        else:
            end = len(cgroup)

        candidate = cgroup[start:end]
        if not _CONTAINER_ID_RE.fullmatch(candidate):
            continue

        return candidate[:REPORTED_CONTAINER_ID_LENGTH]

    return None


def match_cgroups(
    cgroups: Iterable[tuple[str, str]], layout: CgroupLayout
) -> Optional[CgroupMatch]:
    """Try every (subsystem, path) entry of a thread; first hit wins."""
    for _, path in cgroups:
        container_id = match_container_id(path, layout)
        if container_id:
            return CgroupMatch(container_id=container_id, cgroup=path)
    return None

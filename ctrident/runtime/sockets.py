"""
ctrident — Runtime Socket Discovery

Finds runtime API sockets on the host. Candidates are absolute paths
relative to the host root (non-empty when the agent runs in a container
with the host filesystem mounted, e.g. /host).
"""

import os
import stat
from typing import Iterable, Iterator, Optional


def is_unix_socket(path: str) -> bool:
    try:
        return stat.S_ISSOCK(os.stat(path).st_mode)
    except OSError:
        return False


def iter_runtime_sockets(candidates: Iterable[str], host_root: str = "") -> Iterator[str]:
    """Yield every candidate that currently exists and is a Unix socket, in order."""
    for candidate in candidates:
        if not candidate:
            continue
        path = host_root + candidate
        if is_unix_socket(path):
            yield path


def find_runtime_socket(candidates: Iterable[str], host_root: str = "") -> Optional[str]:
    """First usable socket among candidates, or None."""
    return next(iter_runtime_sockets(candidates, host_root), None)

"""
ctrident — Container Cache

Thread-safe in-memory store of resolved containers, shared by every
runtime resolver. The lookup gate is an atomic check-and-set, so at most
one caller per (container id, runtime type) ever gets to publish and
announce a container.
"""

import threading
from typing import Callable, Optional

from ctrident.logging_config import get_logger
from ctrident.tracking.models import ContainerRecord, ContainerType
from ctrident.tracking.threadinfo import ThreadInfo

logger = get_logger("cache")

NewContainerCallback = Callable[[ContainerRecord, Optional[ThreadInfo]], None]


class ContainerCache:
    """
    Maps (container id, runtime type) → ContainerRecord.

    ``should_lookup`` reserves an (id, type) for the first caller; later
    callers for the same pair are told the container is already known or
    already being looked up. The same id under another runtime type is a
    separate entry.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._containers: dict[tuple[str, ContainerType], ContainerRecord] = {}
        self._pending: set[tuple[str, ContainerType]] = set()
        self._listeners: list[NewContainerCallback] = []

    # ── Gate ─────────────────────────────────────────────────

    def should_lookup(self, container_id: str, container_type: ContainerType) -> bool:
        key = (container_id, container_type)
        with self._lock:
            if key in self._containers or key in self._pending:
                return False
            self._pending.add(key)
            return True

    # ── Mutations ────────────────────────────────────────────

    def add_container(self, record: ContainerRecord, tinfo: Optional[ThreadInfo] = None) -> None:
        """Store a resolved container and release its pending reservation."""
        key = (record.id, record.type)
        with self._lock:
            self._containers[key] = record
            self._pending.discard(key)
        if tinfo is not None and not tinfo.container_id:
            tinfo.container_id = record.id

    def remove_container(
        self, container_id: str, container_type: ContainerType = ContainerType.containerd
    ) -> None:
        key = (container_id, container_type)
        with self._lock:
            self._containers.pop(key, None)
            self._pending.discard(key)

    def subscribe(self, callback: NewContainerCallback) -> None:
        """Register a callback fired for every newly published container."""
        with self._lock:
            self._listeners.append(callback)

    def notify_new_container(self, record: ContainerRecord, tinfo: Optional[ThreadInfo] = None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            try:
                callback(record, tinfo)
            except Exception as e:
                logger.warning(
                    "New container listener %r failed for %s: %s",
                    callback, record.id, e,
                )

    def reset(self) -> None:
        with self._lock:
            self._containers.clear()
            self._pending.clear()
            self._listeners.clear()

    # ── Queries ──────────────────────────────────────────────

    def get_container(
        self, container_id: str, container_type: ContainerType = ContainerType.containerd
    ) -> Optional[ContainerRecord]:
        with self._lock:
            return self._containers.get((container_id, container_type))

    @property
    def size(self) -> int:
        """Number of known containers."""
        with self._lock:
            return len(self._containers)


container_cache = ContainerCache()

"""
ctrident — Container Engine Base

A container engine claims threads for one runtime. Engines are asked in
turn; the first one whose resolve() returns True owns the thread.
"""

from ctrident.cache.container_cache import ContainerCache
from ctrident.tracking.threadinfo import ThreadInfo


class ContainerEngine:
    def __init__(self, cache: ContainerCache):
        self._cache = cache

    @property
    def cache(self) -> ContainerCache:
        return self._cache

    def resolve(self, tinfo: ThreadInfo, query_os_for_missing_info: bool = False) -> bool:
        """Attribute tinfo to a container of this runtime. False means "not mine"."""
        raise NotImplementedError

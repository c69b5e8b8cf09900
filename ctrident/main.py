#!/usr/bin/env python3
"""
ctrident — Container Identity Resolver

Resolves running processes to their containerd containers and prints a
``container_added`` event for every container found.

Usage:
    sudo python3 -m ctrident.main 1234 5678
    sudo python3 -m ctrident.main --all

Reading other users' /proc entries and the runtime socket needs root.
"""

import argparse
import os
import socket
import sys

from ctrident.cache.container_cache import container_cache
from ctrident.config import settings
from ctrident.engines.containerd import ContainerdEngine
from ctrident.events.event_emitter import EventEmitter
from ctrident.logging_config import logger, set_level
from ctrident.runtime.channels import close_all
from ctrident.tracking.threadinfo import ThreadInfo


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ctrident",
        description="Attribute processes to containerd containers.",
    )
    parser.add_argument("pids", nargs="*", type=int, help="process ids to resolve")
    parser.add_argument(
        "--all", action="store_true", help="resolve every process under the proc root"
    )
    return parser.parse_args(argv)


def _all_pids(proc_root: str) -> list[int]:
    try:
        return sorted(int(d) for d in os.listdir(proc_root) if d.isdigit())
    except OSError as e:
        logger.error("Cannot list %s: %s", proc_root, e)
        return []


def main(argv=None) -> int:
    args = _parse_args(argv)
    set_level(settings.LOG_LEVEL)

    proc_root = settings.HOST_ROOT + settings.PROC_ROOT
    pids = _all_pids(proc_root) if args.all else args.pids
    if not pids:
        logger.error("Nothing to resolve: pass PIDs or --all")
        return 0

    # ── Initialize components ────────────────────────────────
    cache = container_cache
    emitter = EventEmitter(hostname=socket.gethostname())
    cache.subscribe(emitter.on_new_container)
    engine = ContainerdEngine(cache, settings)

    if engine.client is None:
        logger.warning("No containerd runtime reachable; nothing will resolve.")

    # ── Resolve ──────────────────────────────────────────────
    resolved = 0
    try:
        for pid in pids:
            tinfo = ThreadInfo.from_proc(pid, proc_root)
            if engine.resolve(tinfo):
                resolved += 1
                logger.debug("pid %d → container %s", pid, tinfo.container_id)
    finally:
        close_all()

    logger.info("Processes checked  : %d", len(pids))
    logger.info("Processes resolved : %d", resolved)
    logger.info("Containers found   : %d", cache.size)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
ctrident — Container Event Emitter

Formats newly resolved containers into a fixed JSON schema and writes
one event per line to stdout. Subscribed to the container cache, so it
fires once per container.

Hardening:
  - control characters stripped from every string
  - max field lengths enforced
  - fixed schema, unknown record fields never pass through
"""

import json
import re
import sys
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from ctrident.tracking.models import ContainerRecord
from ctrident.tracking.threadinfo import ThreadInfo

SCHEMA_VERSION = "1.0"
EVENT_TYPE = "container_added"

# ── Field length limits ──────────────────────────────────────

MAX_STRING_LEN = 256
MAX_PATH_LEN = 512
MAX_ENV_LEN = 1024

_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def _sanitize_str(value, max_len: int = MAX_STRING_LEN) -> str:
    """Sanitize a string: strip control chars, truncate."""
    if not isinstance(value, str):
        value = str(value)
    value = _CONTROL_CHAR_RE.sub("", value)
    return value[:max_len]


class EventEmitter:
    """Thread-safe emitter of ``container_added`` events."""

    def __init__(self, hostname: str = ""):
        self._lock = threading.Lock()
        self._hostname = hostname
        self._event_count = 0
        self._last_event_time: str | None = None

    # ── Public API ───────────────────────────────────────────

    def on_new_container(self, record: ContainerRecord, tinfo: Optional[ThreadInfo] = None) -> None:
        """Container cache callback."""
        event = self.build_event(record, tinfo)
        self._output(event)

        with self._lock:
            self._event_count += 1
            self._last_event_time = event["timestamp"]

    @property
    def event_count(self) -> int:
        with self._lock:
            return self._event_count

    @property
    def last_event_time(self) -> str | None:
        with self._lock:
            return self._last_event_time

    # ── Schema construction ──────────────────────────────────

    def build_event(self, record: ContainerRecord, tinfo: Optional[ThreadInfo] = None) -> dict:
        now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return {
            "event_id": str(uuid.uuid4()),
            "schema_version": SCHEMA_VERSION,
            "timestamp": now,
            "event_type": EVENT_TYPE,
            "hostname": _sanitize_str(self._hostname),
            "thread": self._build_thread(tinfo),
            "container": self._build_container(record),
        }

    def _build_thread(self, tinfo: Optional[ThreadInfo]) -> dict | None:
        if tinfo is None:
            return None
        return {
            "tid": tinfo.tid,
            "pid": tinfo.pid,
            "comm": _sanitize_str(tinfo.comm),
        }

    def _build_container(self, record: ContainerRecord) -> dict:
        return {
            "id": _sanitize_str(record.id),
            "full_id": _sanitize_str(record.full_id),
            "name": _sanitize_str(record.name),
            "type": record.type.value,
            "image": _sanitize_str(record.image),
            "image_repo": _sanitize_str(record.image_repo, MAX_PATH_LEN),
            "image_tag": _sanitize_str(record.image_tag),
            "image_digest": _sanitize_str(record.image_digest),
            "labels": {
                _sanitize_str(k): _sanitize_str(v) for k, v in record.labels.items()
            },
            "mounts": [
                {
                    "source": _sanitize_str(m.source, MAX_PATH_LEN),
                    "destination": _sanitize_str(m.destination, MAX_PATH_LEN),
                    "mode": _sanitize_str(m.mode),
                    "rw": m.read_write,
                    "propagation": _sanitize_str(m.propagation),
                }
                for m in record.mounts
            ],
            "env": [_sanitize_str(e, MAX_ENV_LEN) for e in record.env],
            "limits": {
                "memory": record.memory_limit,
                "cpu_shares": record.cpu_shares,
                "cpu_quota": record.cpu_quota,
                "cpu_period": record.cpu_period,
                "cpuset_cpu_count": record.cpuset_cpu_count,
            },
            "lookup_state": record.lookup_state.value,
        }

    # ── Output ───────────────────────────────────────────────

    def _output(self, event: dict) -> None:
        """Write event as JSON to stdout."""
        line = json.dumps(event, default=str, ensure_ascii=True)
        with self._lock:
            sys.stdout.write(line + "\n")
            sys.stdout.flush()

"""
ctrident — gRPC Channel Registry

One channel per (target, options) for the whole process, so every
resolver talking to the same runtime socket shares a connection.
"""

import threading

import grpc

from ctrident.logging_config import get_logger

logger = get_logger("channels")

_lock = threading.Lock()
_channels: dict[tuple, grpc.Channel] = {}


def normalize_unix_target(sock: str) -> str:
    """
    Accepts either:
      - '/run/containerd/containerd.sock' (plain path)
      - 'unix:///run/containerd/containerd.sock' (already normalized)
      - 'unix://run/containerd/containerd.sock' (missing leading slash)
    and returns a valid gRPC target 'unix:///run/containerd/containerd.sock'
    """
    if not sock:
        raise ValueError("socket path/target is empty")

    if sock.startswith("unix://"):
        after = sock[len("unix://"):]
        if after.startswith("/"):
            return sock
        return "unix:///" + after

    if not sock.startswith("/"):
        sock = "/" + sock
    return "unix://" + sock


def get_channel(target: str, options: tuple = ()) -> grpc.Channel:
    """Return the shared insecure channel for target, creating it on first use."""
    key = (target, tuple(options))
    with _lock:
        channel = _channels.get(key)
        if channel is None:
            channel = grpc.insecure_channel(target, options=list(options))
            _channels[key] = channel
            logger.debug("Opened gRPC channel → %s", target)
        return channel


def close_all() -> None:
    """Close and forget every registered channel."""
    with _lock:
        for channel in _channels.values():
            channel.close()
        _channels.clear()

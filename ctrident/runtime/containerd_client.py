"""
ctrident — containerd Runtime Client

Thin client over containerd's Containers/List RPC:
  - handshake()             → list everything once, proving the socket answers
  - list_by_id_fragment()   → list containers whose id contains a fragment

Every call carries the containerd namespace as metadata and a fresh
deadline. RPC failures come back as values, never as exceptions.
"""

from enum import Enum
from typing import Callable, Optional

import grpc

from ctrident.logging_config import get_logger
from ctrident.runtime.channels import get_channel, normalize_unix_target
from ctrident.runtime.containerd_pb import (
    LIST_METHOD,
    NAMESPACE_METADATA_KEY,
    ListContainersRequest,
    ListContainersResponse,
)

logger = get_logger("containerd.client")


class ClientState(str, Enum):
    unbound = "unbound"
    bound = "bound"
    broken = "broken"


def rpc_error_message(e: grpc.RpcError) -> str:
    """Human-readable summary of an RPC failure."""
    if isinstance(e, grpc.Call):
        return f"{e.code().name}: {e.details()}"
    return str(e) or e.__class__.__name__


class ContainerdClient:
    """
    One containerd endpoint.

    The client handshakes on construction. A failed handshake marks it
    broken for good; callers are expected to drop a broken client. Not safe for
    concurrent calls from several threads.
    """

    # Unix socket only, never route through an HTTP proxy
    CHANNEL_OPTIONS = (("grpc.enable_http_proxy", 0),)

    def __init__(
        self,
        socket_path: str,
        namespace: str = "default",
        timeout_ms: int = 1000,
        channel_factory: Callable[..., grpc.Channel] = get_channel,
    ):
        self.socket_path = socket_path
        self._namespace = namespace
        self._timeout_ms = timeout_ms
        self._state = ClientState.unbound

        channel = channel_factory(normalize_unix_target(socket_path), self.CHANNEL_OPTIONS)
        self._list = channel.unary_unary(
            LIST_METHOD,
            request_serializer=ListContainersRequest.SerializeToString,
            response_deserializer=ListContainersResponse.FromString,
        )

        self.handshake()

    # ── State ────────────────────────────────────────────────

    @property
    def state(self) -> ClientState:
        return self._state

    def is_ok(self) -> bool:
        return self._state is ClientState.bound

    # ── RPCs ─────────────────────────────────────────────────

    def handshake(self) -> bool:
        """List all containers in the namespace. Failure breaks the client for good."""
        _, error = self._call(ListContainersRequest())
        if error is not None:
            logger.info(
                "containerd (%s): runtime returned an error while listing containers: %s",
                self.socket_path, rpc_error_message(error),
            )
            self._state = ClientState.broken
            return False

        if self._state is ClientState.unbound:
            self._state = ClientState.bound
        return self.is_ok()

    def list_by_id_fragment(self, fragment: str):
        """
        List containers whose id contains fragment.

        cgroup-derived ids are truncated, so this uses containerd's regex
        match filter (``~=``) rather than equality.

        Returns (ListContainersResponse, None) or (None, grpc.RpcError).
        """
        request = ListContainersRequest(filters=[f"id~={fragment}"])
        return self._call(request)

    def _call(self, request) -> tuple[Optional[object], Optional[grpc.RpcError]]:
        try:
            response = self._list(
                request,
                timeout=self._timeout_ms / 1000.0,
                metadata=((NAMESPACE_METADATA_KEY, self._namespace),),
            )
        except grpc.RpcError as e:
            return None, e
        return response, None

import os
import socket
from concurrent import futures

import grpc
import pytest

from ctrident.cache.container_cache import container_cache
from ctrident.config import Settings
from ctrident.runtime import channels
from ctrident.runtime.containerd_pb import (
    SERVICE,
    Container,
    ListContainersRequest,
    ListContainersResponse,
)

FULL_ID = "a3f5c1d2e4b6" + "9c" * 26
SHORT_ID = FULL_ID[:12]

SPEC_JSON = b"""{
  "process": {"env": ["PATH=/usr/bin", "HOSTNAME=web"]},
  "mounts": [
    {"source": "proc", "destination": "/proc", "options": ["nosuid", "noexec"]},
    {"source": "/srv/data", "destination": "/data", "options": ["rbind", "ro"]},
    {"source": "tmpfs", "destination": "/dev", "options": ["nosuid", "strictatime", "mode=755"]}
  ],
  "linux": {"rootfsPropagation": "rslave"}
}"""


def make_container(container_id=FULL_ID, image="docker.io/library/nginx:1.25", labels=None, spec=SPEC_JSON):
    container = Container(id=container_id, image=image)
    for key, value in (labels or {}).items():
        container.labels[key] = value
    if spec:
        container.spec.type_url = "types.containerd.io/opencontainers/runtime-spec/1/Spec"
        container.spec.value = spec
    return container


@pytest.fixture(autouse=True)
def reset_state():
    container_cache.reset()
    yield
    channels.close_all()


@pytest.fixture
def make_socket(tmp_path):
    """Bind a listening Unix socket at tmp_path + rel_path; never answers."""
    opened = []

    def _make(rel_path):
        path = str(tmp_path) + rel_path
        os.makedirs(os.path.dirname(path), exist_ok=True)
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.bind(path)
        sock.listen(8)
        opened.append(sock)
        return path

    yield _make
    for sock in opened:
        sock.close()


@pytest.fixture
def settings_for(tmp_path):
    def _settings(sockets, **overrides):
        return Settings(
            HOST_ROOT=str(tmp_path),
            CONTAINERD_SOCKETS=sockets,
            CGROUP_ROOT="/sys/fs/cgroup",
            **overrides,
        )

    return _settings


class FakeContainerd:
    """In-process Containers service; honours the id~= filter."""

    def __init__(self, containers):
        self.containers = list(containers)
        self.requests = []

    def List(self, request, context):
        self.requests.append(
            (list(request.filters), dict(context.invocation_metadata()))
        )
        found = self.containers
        for f in request.filters:
            if f.startswith("id~="):
                fragment = f[len("id~="):]
                found = [c for c in found if fragment in c.id]
        return ListContainersResponse(containers=found)


@pytest.fixture
def containerd_server(tmp_path):
    servers = []

    def _start(containers=(), rel_path="/run/x.sock"):
        path = str(tmp_path) + rel_path
        os.makedirs(os.path.dirname(path), exist_ok=True)
        fake = FakeContainerd(containers)
        handler = grpc.method_handlers_generic_handler(
            SERVICE,
            {
                "List": grpc.unary_unary_rpc_method_handler(
                    fake.List,
                    request_deserializer=ListContainersRequest.FromString,
                    response_serializer=ListContainersResponse.SerializeToString,
                )
            },
        )
        server = grpc.server(futures.ThreadPoolExecutor(max_workers=2))
        server.add_generic_rpc_handlers((handler,))
        server.add_insecure_port("unix://" + path)
        server.start()
        servers.append(server)
        return fake, path

    yield _start
    for server in servers:
        server.stop(None)

import grpc

from ctrident.cache.container_cache import ContainerCache
from ctrident.cgroups.limits import CgroupLimitsValue
from ctrident.engines.containerd import ContainerdEngine
from ctrident.runtime.containerd_pb import ListContainersResponse
from ctrident.tracking.models import ContainerType, LookupState
from ctrident.tracking.threadinfo import ThreadInfo

from conftest import FULL_ID, SHORT_ID, make_container

CGROUP = f"/default/{FULL_ID}"


class FakeClient:
    """Stands in for ContainerdClient; answers from a fixed container list."""

    containers = []
    ok = True
    error = None
    instances = []

    def __init__(self, socket_path, namespace="default", timeout_ms=1000):
        self.socket_path = socket_path
        self.queries = []
        FakeClient.instances.append(self)

    def is_ok(self):
        return self.ok

    def list_by_id_fragment(self, fragment):
        self.queries.append(fragment)
        if self.error is not None:
            return None, self.error
        return ListContainersResponse(containers=self.containers), None


def fake_client(containers=(), ok=True, error=None):
    FakeClient.instances = []
    return type(
        "ConfiguredFakeClient",
        (FakeClient,),
        {"containers": list(containers), "ok": ok, "error": error},
    )


class Limits:
    def __init__(self):
        self.keys = []

    def __call__(self, key):
        self.keys.append(key)
        return CgroupLimitsValue(
            memory_limit=512 * 1024 * 1024,
            cpu_shares=1024,
            cpu_quota=50000,
            cpu_period=100000,
            cpuset_cpu_count=2,
        )


def thread(cgroup=CGROUP):
    return ThreadInfo(
        tid=101,
        pid=100,
        comm="nginx",
        cgroups=[("cpu", cgroup), ("memory", cgroup), ("cpuset", "/")],
    )


def engine_with(make_socket, settings_for, client_cls, cache=None, limits=None):
    make_socket("/run/containerd/containerd.sock")
    config = settings_for(["/run/containerd/containerd.sock"])
    return ContainerdEngine(
        cache or ContainerCache(), config, client_factory=client_cls, limits_fn=limits or Limits()
    )


def test_unmatched_thread_never_queries_runtime(make_socket, settings_for):
    engine = engine_with(make_socket, settings_for, fake_client([make_container()]))
    tinfo = thread(cgroup="/user.slice/session-1.scope")

    assert engine.resolve(tinfo) is False
    assert engine.client.queries == []
    assert tinfo.container_id == ""


def test_no_socket_means_no_client(settings_for):
    client_cls = fake_client([make_container()])
    engine = ContainerdEngine(
        ContainerCache(), settings_for(["/run/containerd/containerd.sock"]), client_factory=client_cls
    )
    assert engine.client is None
    assert client_cls.instances == []
    assert engine.resolve(thread()) is False


def test_failed_handshake_leaves_no_client(make_socket, settings_for):
    engine = engine_with(make_socket, settings_for, fake_client(ok=False))
    assert engine.client is None
    assert engine.resolve(thread()) is False


def test_single_match_resolves_and_publishes(make_socket, settings_for):
    cache = ContainerCache()
    announced = []
    cache.subscribe(lambda record, tinfo: announced.append((record, tinfo)))
    limits = Limits()
    labels = {"io.kubernetes.pod.name": "web", "huge": "v" * 101}
    engine = engine_with(
        make_socket, settings_for, fake_client([make_container(labels=labels)]), cache, limits
    )
    tinfo = thread()

    assert engine.resolve(tinfo) is True
    assert engine.client.queries == [SHORT_ID]
    assert tinfo.container_id == SHORT_ID

    record = cache.get_container(SHORT_ID)
    assert record.id == SHORT_ID
    assert record.full_id == FULL_ID
    assert record.name == SHORT_ID
    assert record.type is ContainerType.containerd
    assert record.lookup_state is LookupState.successful
    assert (record.image_repo, record.image, record.image_tag) == ("docker.io/library", "nginx", "1.25")
    assert record.labels == {"io.kubernetes.pod.name": "web"}
    assert len(record.mounts) == 3
    assert record.env == ["PATH=/usr/bin", "HOSTNAME=web"]
    assert record.memory_limit == 512 * 1024 * 1024
    assert record.cpu_shares == 1024
    assert record.cpu_quota == 50000
    assert record.cpu_period == 100000
    assert record.cpuset_cpu_count == 2

    key = limits.keys[0]
    assert key.container_id == SHORT_ID
    assert (key.cpu_cgroup, key.mem_cgroup, key.cpuset_cgroup) == (CGROUP, CGROUP, "/")

    assert len(announced) == 1
    assert announced[0][0] is record
    assert announced[0][1] is tinfo


def test_second_resolve_does_not_announce_again(make_socket, settings_for):
    cache = ContainerCache()
    announced = []
    cache.subscribe(lambda record, tinfo: announced.append(record.id))
    engine = engine_with(make_socket, settings_for, fake_client([make_container()]), cache)

    assert engine.resolve(thread()) is True
    assert engine.resolve(thread()) is True
    assert announced == [SHORT_ID]
    assert cache.size == 1


def test_no_match_fails(make_socket, settings_for):
    cache = ContainerCache()
    engine = engine_with(make_socket, settings_for, fake_client([]), cache)
    tinfo = thread()

    assert engine.resolve(tinfo) is False
    assert tinfo.container_id == ""
    assert cache.size == 0


def test_ambiguous_match_fails_even_for_identical_records(make_socket, settings_for):
    cache = ContainerCache()
    engine = engine_with(
        make_socket, settings_for, fake_client([make_container(), make_container()]), cache
    )
    tinfo = thread()

    assert engine.resolve(tinfo) is False
    assert tinfo.container_id == ""
    assert cache.size == 0


def test_rpc_error_fails_resolution(make_socket, settings_for):
    cache = ContainerCache()
    engine = engine_with(
        make_socket, settings_for, fake_client(error=grpc.RpcError("deadline")), cache
    )

    assert engine.resolve(thread()) is False
    assert engine.client.queries == [SHORT_ID]
    assert cache.size == 0


def test_malformed_spec_still_resolves(make_socket, settings_for):
    cache = ContainerCache()
    engine = engine_with(
        make_socket, settings_for, fake_client([make_container(spec=b"{oops")]), cache
    )

    assert engine.resolve(thread()) is True
    record = cache.get_container(SHORT_ID)
    assert record.mounts == []
    assert record.env == []


def test_first_answering_socket_is_used(make_socket, settings_for, containerd_server):
    containerd_server([make_container()], rel_path="/run/x.sock")
    config = settings_for(["/nonexistent", "/run/x.sock"], RUNTIME_TIMEOUT_MS=2000)
    cache = ContainerCache()

    engine = ContainerdEngine(cache, config, limits_fn=Limits())

    assert engine.client is not None
    assert engine.client.is_ok()
    assert engine.client.socket_path == config.HOST_ROOT + "/run/x.sock"

    tinfo = thread()
    assert engine.resolve(tinfo) is True
    assert cache.get_container(SHORT_ID).full_id == FULL_ID


def test_silent_socket_is_skipped_for_next_candidate(make_socket, settings_for, containerd_server):
    make_socket("/run/silent.sock")
    containerd_server([make_container()], rel_path="/run/x.sock")
    config = settings_for(["/run/silent.sock", "/run/x.sock"], RUNTIME_TIMEOUT_MS=1000)

    engine = ContainerdEngine(ContainerCache(), config, limits_fn=Limits())

    assert engine.client.socket_path == config.HOST_ROOT + "/run/x.sock"

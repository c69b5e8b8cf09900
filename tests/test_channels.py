import pytest

from ctrident.runtime.channels import close_all, get_channel, normalize_unix_target


def test_normalize_unix_target():
    assert normalize_unix_target("/run/x.sock") == "unix:///run/x.sock"
    assert normalize_unix_target("run/x.sock") == "unix:///run/x.sock"
    assert normalize_unix_target("unix:///run/x.sock") == "unix:///run/x.sock"
    assert normalize_unix_target("unix://run/x.sock") == "unix:///run/x.sock"


def test_empty_target_rejected():
    with pytest.raises(ValueError):
        normalize_unix_target("")


def test_channels_are_shared_per_target():
    options = (("grpc.enable_http_proxy", 0),)
    a = get_channel("unix:///tmp/ctrident-a.sock", options)
    assert get_channel("unix:///tmp/ctrident-a.sock", options) is a
    assert get_channel("unix:///tmp/ctrident-b.sock", options) is not a

    close_all()
    assert get_channel("unix:///tmp/ctrident-a.sock", options) is not a

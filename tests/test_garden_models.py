from __future__ import annotations

import pytest

from gardenctl.garden.models import (
    BindMount,
    BindMountMode,
    BindMountOrigin,
    ContainerSpec,
    IPRange,
    NetIn,
    NetOutRule,
    NetProtocol,
    ProcessSpec,
    TTYSpec,
)
from gardenctl.terminal.models import WindowSize


def test_container_spec_serializes_grace_time_as_nanoseconds() -> None:
    spec = ContainerSpec(handle="box", grace_time=1.5)

    assert spec.to_dict()["grace_time"] == 1_500_000_000


def test_container_spec_serializes_nested_rules() -> None:
    spec = ContainerSpec(
        handle="box",
        rootfs="docker:///busybox",
        privileged=True,
        env=("A=1",),
        bind_mounts=(BindMount("/src", "/dst", BindMountMode.RW, BindMountOrigin.HOST),),
        net_in=(NetIn(8080, 80),),
        net_out=(NetOutRule(NetProtocol.TCP, (IPRange.from_ip("10.0.0.1"),)),),
    )

    payload = spec.to_dict()

    assert payload["bind_mounts"] == [{"src_path": "/src", "dst_path": "/dst", "mode": 1, "origin": 0}]
    assert payload["net_in"] == [{"host_port": 8080, "container_port": 80}]
    assert payload["net_out"] == [{"protocol": 1, "networks": [{"start": "10.0.0.1", "end": "10.0.0.1"}]}]
    assert payload["env"] == ["A=1"]
    assert payload["privileged"] is True


def test_net_out_rule_without_networks_omits_the_key() -> None:
    assert NetOutRule(NetProtocol.TCP).to_dict() == {"protocol": 1}


def test_ip_range_from_ip_normalizes_addresses() -> None:
    assert IPRange.from_ip(" 2001:DB8::1 ") == IPRange("2001:db8::1", "2001:db8::1")
    with pytest.raises(ValueError):
        IPRange.from_ip("not-an-ip")


def test_process_spec_includes_tty_window_size() -> None:
    spec = ProcessSpec(path="/bin/sh", user="root", tty=TTYSpec(WindowSize(columns=120, rows=40)))

    payload = spec.to_dict()

    assert payload["tty"] == {"window_size": {"columns": 120, "rows": 40}}
    assert payload["path"] == "/bin/sh"
    assert payload["user"] == "root"


def test_process_spec_without_tty_has_no_tty_key() -> None:
    assert "tty" not in ProcessSpec(path="/bin/ls").to_dict()


def test_window_size_rejects_negative_dimensions() -> None:
    with pytest.raises(ValueError):
        WindowSize(columns=-1, rows=10)

"""Container creation flag parsing."""

from __future__ import annotations

import logging as py_logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from gardenctl.errors import ValidationError
from gardenctl.garden.client import GardenClient
from gardenctl.garden.models import (
    BindMount,
    BindMountMode,
    BindMountOrigin,
    ContainerSpec,
    IPRange,
    NetIn,
    NetOutRule,
    NetProtocol,
)

logger = py_logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True)
class CreateOptions:
    handle: str = ""
    rootfs: str = ""
    env: Sequence[str] = field(default_factory=tuple)
    grace: str = ""
    privileged: bool = False
    network: str = ""
    bind_mounts: Sequence[str] = field(default_factory=tuple)
    net_in: Sequence[str] = field(default_factory=tuple)
    net_out: Sequence[str] = field(default_factory=tuple)


def parse_duration(value: str) -> float:
    """Parse ``300``, ``90s``, ``5m`` or ``1h30m`` into seconds."""
    text = value.strip()
    if not text:
        return 0.0
    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return float(text)
    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ValidationError(
            f"Invalid grace time: {value}",
            hint="Use seconds or a duration like 30s, 5m or 1h30m.",
        )
    return total


def parse_bind_mount(pair: str) -> BindMount:
    src, sep, dst = pair.partition(":")
    if not sep:
        raise ValidationError(
            f"invalid bind-mount segment (must be host-path:container-path): {pair}",
            hint="Pass --bind-mount /host/path:/container/path.",
        )
    return BindMount(
        src_path=src,
        dst_path=dst,
        mode=BindMountMode.RW,
        origin=BindMountOrigin.HOST,
    )


def _port(value: str, pair: str) -> int:
    text = value.strip()
    if not text.isdigit() or int(text) > 65535:
        raise ValidationError(
            f"invalid net-in port {value!r} in segment: {pair}",
            hint="Ports must be integers between 0 and 65535.",
        )
    return int(text)


def parse_net_in(pair: str) -> NetIn:
    host, sep, container = pair.partition(":")
    if not sep:
        raise ValidationError(
            f"invalid net-in segment (must be host-port:container-port): {pair}",
            hint="Pass --net-in 8080:80.",
        )
    return NetIn(host_port=_port(host, pair), container_port=_port(container, pair))


def parse_net_out(networks: Sequence[str]) -> NetOutRule:
    ranges: list[IPRange] = []
    for network in networks:
        try:
            ranges.append(IPRange.from_ip(network))
        except ValueError as exc:
            raise ValidationError(
                f"invalid net-out address: {network}",
                hint="Pass --net-out with a single IPv4 or IPv6 address.",
            ) from exc
    return NetOutRule(protocol=NetProtocol.TCP, networks=tuple(ranges))


def build_container_spec(options: CreateOptions) -> ContainerSpec:
    return ContainerSpec(
        handle=options.handle,
        grace_time=parse_duration(options.grace),
        rootfs=options.rootfs,
        privileged=options.privileged,
        env=tuple(options.env),
        network=options.network,
        bind_mounts=tuple(parse_bind_mount(pair) for pair in options.bind_mounts),
        net_in=tuple(parse_net_in(pair) for pair in options.net_in),
        net_out=(parse_net_out(options.net_out),),
    )


def create_container(client: GardenClient, options: CreateOptions) -> str:
    spec = build_container_spec(options)
    logger.debug(
        "Creating container handle=%s bind_mounts=%d net_in=%d",
        spec.handle or "<generated>",
        len(spec.bind_mounts),
        len(spec.net_in),
    )
    container = client.create(spec)
    return container.handle()

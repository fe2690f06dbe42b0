"""Garden API data model and JSON encoding."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO

from gardenctl.terminal.models import WindowSize

_NANOSECONDS_PER_SECOND = 1_000_000_000


class BindMountMode(IntEnum):
    RO = 0
    RW = 1


class BindMountOrigin(IntEnum):
    HOST = 0
    CONTAINER = 1


class NetProtocol(IntEnum):
    ALL = 0
    TCP = 1
    UDP = 2
    ICMP = 3


class ProcessStreamSource(IntEnum):
    STDIN = 1
    STDOUT = 2
    STDERR = 3


@dataclass(frozen=True)
class BindMount:
    src_path: str
    dst_path: str
    mode: BindMountMode = BindMountMode.RO
    origin: BindMountOrigin = BindMountOrigin.HOST

    def to_dict(self) -> dict[str, object]:
        return {
            "src_path": self.src_path,
            "dst_path": self.dst_path,
            "mode": int(self.mode),
            "origin": int(self.origin),
        }


@dataclass(frozen=True)
class NetIn:
    host_port: int
    container_port: int

    def to_dict(self) -> dict[str, object]:
        return {"host_port": self.host_port, "container_port": self.container_port}


@dataclass(frozen=True)
class IPRange:
    start: str
    end: str

    @classmethod
    def from_ip(cls, ip: str) -> IPRange:
        address = str(ipaddress.ip_address(ip.strip()))
        return cls(start=address, end=address)

    def to_dict(self) -> dict[str, object]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class NetOutRule:
    protocol: NetProtocol = NetProtocol.ALL
    networks: tuple[IPRange, ...] = ()

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"protocol": int(self.protocol)}
        if self.networks:
            payload["networks"] = [network.to_dict() for network in self.networks]
        return payload


@dataclass(frozen=True)
class ContainerSpec:
    handle: str = ""
    grace_time: float = 0.0
    rootfs: str = ""
    privileged: bool = False
    env: tuple[str, ...] = ()
    network: str = ""
    bind_mounts: tuple[BindMount, ...] = ()
    net_in: tuple[NetIn, ...] = ()
    net_out: tuple[NetOutRule, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "handle": self.handle,
            "grace_time": int(self.grace_time * _NANOSECONDS_PER_SECOND),
            "rootfs": self.rootfs,
            "privileged": self.privileged,
            "env": list(self.env),
            "network": self.network,
            "bind_mounts": [mount.to_dict() for mount in self.bind_mounts],
            "net_in": [rule.to_dict() for rule in self.net_in],
            "net_out": [rule.to_dict() for rule in self.net_out],
        }


@dataclass(frozen=True)
class TTYSpec:
    window_size: WindowSize | None = None

    def to_dict(self) -> dict[str, object]:
        if self.window_size is None:
            return {}
        return {"window_size": self.window_size.to_dict()}


@dataclass(frozen=True)
class ProcessSpec:
    path: str
    args: tuple[str, ...] = ()
    user: str = ""
    env: tuple[str, ...] = ()
    dir: str = ""
    tty: TTYSpec | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "path": self.path,
            "args": list(self.args),
            "user": self.user,
            "env": list(self.env),
            "dir": self.dir,
        }
        if self.tty is not None:
            payload["tty"] = self.tty.to_dict()
        return payload


@dataclass
class ProcessIO:
    stdin: BinaryIO | None = None
    stdout: BinaryIO | None = None
    stderr: BinaryIO | None = None


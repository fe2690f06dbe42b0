"""Garden API client and data model."""

from .client import Container, GardenClient
from .models import (
    BindMount,
    BindMountMode,
    BindMountOrigin,
    ContainerSpec,
    IPRange,
    NetIn,
    NetOutRule,
    NetProtocol,
    ProcessIO,
    ProcessSpec,
    TTYSpec,
)
from .process import Process

__all__ = [
    "BindMount",
    "BindMountMode",
    "BindMountOrigin",
    "Container",
    "ContainerSpec",
    "GardenClient",
    "IPRange",
    "NetIn",
    "NetOutRule",
    "NetProtocol",
    "Process",
    "ProcessIO",
    "ProcessSpec",
    "TTYSpec",
]

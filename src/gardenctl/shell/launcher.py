"""Remote interactive shell launch."""

from __future__ import annotations

import logging as py_logging
import os
from typing import Protocol

from gardenctl.garden.models import ProcessIO, ProcessSpec, TTYSpec
from gardenctl.terminal.models import WindowSize

logger = py_logging.getLogger(__name__)

POSIX_SHELL = "/bin/sh"
WINDOWS_SHELL = "cmd.exe"


class RemoteProcess(Protocol):
    def wait(self) -> int: ...


class ProcessHost(Protocol):
    def run(self, spec: ProcessSpec, io: ProcessIO) -> RemoteProcess: ...


def default_shell_path(platform_name: str | None = None) -> str:
    name = platform_name or os.name
    if name == "nt":
        return WINDOWS_SHELL
    return POSIX_SHELL


def build_shell_spec(
    *,
    user: str,
    shell_path: str,
    window_size: WindowSize,
    term: str = "",
) -> ProcessSpec:
    env = (f"TERM={term}",) if term else ()
    return ProcessSpec(
        path=shell_path,
        user=user,
        env=env,
        tty=TTYSpec(window_size=window_size),
    )


def launch_remote_shell(
    host: ProcessHost,
    *,
    user: str,
    shell_path: str,
    window_size: WindowSize,
    io: ProcessIO,
    term: str = "",
) -> RemoteProcess:
    spec = build_shell_spec(user=user, shell_path=shell_path, window_size=window_size, term=term)
    logger.debug(
        "Launching remote shell path=%s user=%s size=%sx%s",
        shell_path,
        user,
        window_size.columns,
        window_size.rows,
    )
    return host.run(spec, io)

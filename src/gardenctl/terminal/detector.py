"""Standard stream terminal detection."""

from __future__ import annotations

import io
from typing import IO

from gardenctl.errors import NotATerminalError
from gardenctl.terminal.control import TerminalControl
from gardenctl.terminal.models import StreamDirection, TerminalDescriptor


def describe_stream(
    stream: IO[str] | IO[bytes] | None,
    direction: StreamDirection,
    control: TerminalControl,
) -> TerminalDescriptor:
    if stream is None:
        return TerminalDescriptor(fd=-1, is_terminal=False, direction=direction)
    try:
        fd = stream.fileno()
    except (AttributeError, OSError, ValueError, io.UnsupportedOperation):
        return TerminalDescriptor(fd=-1, is_terminal=False, direction=direction)
    return TerminalDescriptor(fd=fd, is_terminal=control.is_terminal(fd), direction=direction)


def detect_std_streams(
    stdin: IO[str] | IO[bytes] | None,
    stdout: IO[str] | IO[bytes] | None,
    control: TerminalControl,
) -> tuple[TerminalDescriptor, TerminalDescriptor]:
    return (
        describe_stream(stdin, StreamDirection.INPUT, control),
        describe_stream(stdout, StreamDirection.OUTPUT, control),
    )


def require_terminals(*descriptors: TerminalDescriptor) -> None:
    missing = [item.direction.value for item in descriptors if not item.is_terminal]
    if missing:
        raise NotATerminalError(
            "Shell command is supported only from a terminal "
            f"({' and '.join(missing)} is not a terminal)."
        )

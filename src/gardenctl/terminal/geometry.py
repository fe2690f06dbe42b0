"""Terminal window size lookup."""

from __future__ import annotations

from gardenctl.errors import TerminalStateError
from gardenctl.terminal.control import TerminalControl
from gardenctl.terminal.models import TerminalDescriptor, WindowSize


def read_window_size(control: TerminalControl, descriptor: TerminalDescriptor) -> WindowSize:
    if not descriptor.is_terminal:
        raise TerminalStateError(
            f"Descriptor {descriptor.fd} does not support size queries.",
            hint="Run this command from an interactive terminal.",
        )
    columns, rows = control.window_size(descriptor.fd)
    if columns <= 0 or rows <= 0:
        raise TerminalStateError(
            f"Terminal reported an unusable size: {columns}x{rows}",
            hint="Resize the terminal window and retry.",
        )
    return WindowSize(columns=columns, rows=rows)

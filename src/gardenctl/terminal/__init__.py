"""Local terminal capability, state and geometry."""

from .control import PosixTerminalControl, TerminalControl, WindowsTerminalControl, select_terminal_control
from .detector import detect_std_streams, require_terminals
from .geometry import read_window_size
from .models import StreamDirection, TerminalDescriptor, TerminalModeSnapshot, WindowSize
from .state import RawModeGuard, capture_and_set_raw, capture_and_set_raw_output, restore

__all__ = [
    "capture_and_set_raw",
    "capture_and_set_raw_output",
    "detect_std_streams",
    "PosixTerminalControl",
    "RawModeGuard",
    "read_window_size",
    "require_terminals",
    "restore",
    "select_terminal_control",
    "StreamDirection",
    "TerminalControl",
    "TerminalDescriptor",
    "TerminalModeSnapshot",
    "WindowsTerminalControl",
    "WindowSize",
]

"""Platform terminal primitives behind a single interface."""

from __future__ import annotations

import os
from typing import Protocol

from gardenctl.errors import TerminalStateError

# Windows console mode flags.
_ENABLE_PROCESSED_INPUT = 0x0001
_ENABLE_LINE_INPUT = 0x0002
_ENABLE_ECHO_INPUT = 0x0004
_ENABLE_VIRTUAL_TERMINAL_INPUT = 0x0200
_ENABLE_VIRTUAL_TERMINAL_PROCESSING = 0x0004
_DISABLE_NEWLINE_AUTO_RETURN = 0x0008


class TerminalControl(Protocol):
    def is_terminal(self, fd: int) -> bool: ...

    def make_raw_input(self, fd: int) -> object: ...

    def make_raw_output(self, fd: int) -> object: ...

    def restore(self, fd: int, state: object) -> None: ...

    def window_size(self, fd: int) -> tuple[int, int]: ...


def _query_window_size(fd: int) -> tuple[int, int]:
    try:
        size = os.get_terminal_size(fd)
    except (OSError, ValueError) as exc:
        raise TerminalStateError(
            f"Cannot read terminal size for descriptor {fd}.",
            hint=str(exc) or "Run this command from an interactive terminal.",
        ) from exc
    return size.columns, size.lines


class PosixTerminalControl:
    """termios-backed raw mode handling."""

    def is_terminal(self, fd: int) -> bool:
        try:
            return os.isatty(fd)
        except OSError:
            return False

    def make_raw_input(self, fd: int) -> object:
        import termios
        import tty

        try:
            previous = termios.tcgetattr(fd)
            tty.setraw(fd, termios.TCSANOW)
        except (termios.error, OSError) as exc:
            raise TerminalStateError(
                f"Failed to switch descriptor {fd} to raw input mode.",
                hint=str(exc),
            ) from exc
        return previous

    def make_raw_output(self, fd: int) -> object:
        import termios

        try:
            previous = termios.tcgetattr(fd)
            updated = list(previous)
            updated[1] = updated[1] & ~termios.OPOST
            termios.tcsetattr(fd, termios.TCSANOW, updated)
        except (termios.error, OSError) as exc:
            raise TerminalStateError(
                f"Failed to switch descriptor {fd} to raw output mode.",
                hint=str(exc),
            ) from exc
        return previous

    def restore(self, fd: int, state: object) -> None:
        import termios

        try:
            termios.tcsetattr(fd, termios.TCSADRAIN, state)
        except (termios.error, OSError, TypeError) as exc:
            raise TerminalStateError(
                f"Failed to restore terminal mode for descriptor {fd}.",
                hint=str(exc),
            ) from exc

    def window_size(self, fd: int) -> tuple[int, int]:
        return _query_window_size(fd)


class WindowsTerminalControl:
    """Console-mode raw handling through kernel32."""

    def _kernel32(self) -> object:
        import ctypes

        return ctypes.windll.kernel32  # type: ignore[attr-defined]

    def _console_handle(self, fd: int) -> int:
        import msvcrt

        try:
            return int(msvcrt.get_osfhandle(fd))  # type: ignore[attr-defined]
        except OSError as exc:
            raise TerminalStateError(
                f"Descriptor {fd} has no console handle.",
                hint=str(exc),
            ) from exc

    def _get_mode(self, fd: int) -> int:
        import ctypes

        mode = ctypes.c_uint32()
        handle = self._console_handle(fd)
        if not self._kernel32().GetConsoleMode(handle, ctypes.byref(mode)):
            raise TerminalStateError(
                f"Failed to read console mode for descriptor {fd}.",
                hint=f"Windows error {ctypes.GetLastError()}",  # type: ignore[attr-defined]
            )
        return int(mode.value)

    def _set_mode(self, fd: int, mode: int) -> None:
        import ctypes

        handle = self._console_handle(fd)
        if not self._kernel32().SetConsoleMode(handle, ctypes.c_uint32(mode)):
            raise TerminalStateError(
                f"Failed to set console mode for descriptor {fd}.",
                hint=f"Windows error {ctypes.GetLastError()}",  # type: ignore[attr-defined]
            )

    def is_terminal(self, fd: int) -> bool:
        try:
            if not os.isatty(fd):
                return False
            self._get_mode(fd)
        except (OSError, TerminalStateError):
            return False
        return True

    def make_raw_input(self, fd: int) -> object:
        previous = self._get_mode(fd)
        raw = previous & ~(_ENABLE_ECHO_INPUT | _ENABLE_LINE_INPUT | _ENABLE_PROCESSED_INPUT)
        self._set_mode(fd, raw | _ENABLE_VIRTUAL_TERMINAL_INPUT)
        return previous

    def make_raw_output(self, fd: int) -> object:
        previous = self._get_mode(fd)
        self._set_mode(fd, previous | _ENABLE_VIRTUAL_TERMINAL_PROCESSING | _DISABLE_NEWLINE_AUTO_RETURN)
        return previous

    def restore(self, fd: int, state: object) -> None:
        if not isinstance(state, int):
            raise TerminalStateError(f"Invalid console mode snapshot for descriptor {fd}.")
        self._set_mode(fd, state)

    def window_size(self, fd: int) -> tuple[int, int]:
        return _query_window_size(fd)


def select_terminal_control(platform_name: str | None = None) -> TerminalControl:
    name = platform_name or os.name
    if name == "nt":
        return WindowsTerminalControl()
    return PosixTerminalControl()

"""Interactive remote shell session orchestration.

A session bridges the local terminal to a remote process with a PTY:

1. both stdin and stdout must be terminals, checked before any mode change;
2. stdin then stdout are switched to raw mode, each behind its own guard;
3. the window size is read once and sent with the launch request;
4. the call blocks until the remote process exits;
5. stdout then stdin are restored on every exit path.

Only one session may hold the terminal at a time. This is a precondition of
the caller, not enforced with locks.
"""

from __future__ import annotations

import logging as py_logging
import os
import sys
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from typing import IO

from gardenctl.errors import TerminalStateError
from gardenctl.garden.models import ProcessIO
from gardenctl.logging import raw_terminal_logging
from gardenctl.shell.launcher import ProcessHost, default_shell_path, launch_remote_shell
from gardenctl.terminal.control import TerminalControl, select_terminal_control
from gardenctl.terminal.detector import detect_std_streams, require_terminals
from gardenctl.terminal.geometry import read_window_size
from gardenctl.terminal.models import WindowSize
from gardenctl.terminal.state import RawModeGuard

logger = py_logging.getLogger(__name__)


class SessionState(str, Enum):
    INIT = "init"
    CAPABILITY_CHECKED = "capability-checked"
    INPUT_RAW_CAPTURED = "input-raw-captured"
    OUTPUT_RAW_CAPTURED = "output-raw-captured"
    GEOMETRY_READ = "geometry-read"
    SESSION_RUNNING = "session-running"
    DRAINING = "draining"
    RESTORED = "restored"
    DONE = "done"


@dataclass
class ShellResult:
    exit_status: int
    window_size: WindowSize
    cleanup_errors: list[TerminalStateError] = field(default_factory=list)


def _binary(stream: IO[str] | IO[bytes] | None) -> IO[bytes] | None:
    if stream is None:
        return None
    return getattr(stream, "buffer", stream)


class ShellSession:
    def __init__(
        self,
        host: ProcessHost,
        *,
        user: str = "root",
        shell_path: str = "",
        control: TerminalControl | None = None,
        stdin: IO[str] | IO[bytes] | None = None,
        stdout: IO[str] | IO[bytes] | None = None,
        stderr: IO[str] | IO[bytes] | None = None,
        term: str | None = None,
    ) -> None:
        self.host = host
        self.user = user
        self.shell_path = shell_path or default_shell_path()
        self.control = control or select_terminal_control()
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.term = os.environ.get("TERM", "") if term is None else term
        self.state = SessionState.INIT
        self.history: list[SessionState] = [SessionState.INIT]
        self.cleanup_errors: list[TerminalStateError] = []

    def _transition(self, state: SessionState) -> None:
        logger.debug("shell-session %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def run(self) -> ShellResult:
        if self.state != SessionState.INIT:
            raise TerminalStateError("Shell session already ran.", hint="Create a new session.")

        stdin_descriptor, stdout_descriptor = detect_std_streams(self.stdin, self.stdout, self.control)
        require_terminals(stdin_descriptor, stdout_descriptor)
        self._transition(SessionState.CAPABILITY_CHECKED)

        input_guard = RawModeGuard(self.control, stdin_descriptor)
        output_guard = RawModeGuard(self.control, stdout_descriptor)
        try:
            # ExitStack unwinds last-in first-out: output is restored before input.
            with ExitStack() as stack:
                try:
                    stack.enter_context(input_guard)
                    self._transition(SessionState.INPUT_RAW_CAPTURED)
                    stack.enter_context(output_guard)
                    stack.enter_context(raw_terminal_logging())
                    self._transition(SessionState.OUTPUT_RAW_CAPTURED)

                    window_size = read_window_size(self.control, stdout_descriptor)
                    self._transition(SessionState.GEOMETRY_READ)

                    process = launch_remote_shell(
                        self.host,
                        user=self.user,
                        shell_path=self.shell_path,
                        window_size=window_size,
                        io=ProcessIO(
                            stdin=_binary(self.stdin),
                            stdout=_binary(self.stdout),
                            stderr=_binary(self.stderr),
                        ),
                        term=self.term,
                    )
                    self._transition(SessionState.SESSION_RUNNING)
                    exit_status = process.wait()
                    del process
                finally:
                    self._transition(SessionState.DRAINING)
        finally:
            self.cleanup_errors = [
                guard.restore_error for guard in (output_guard, input_guard) if guard.restore_error is not None
            ]
            self._transition(SessionState.RESTORED)
            self._transition(SessionState.DONE)

        logger.info("Remote shell exited status=%s", exit_status)
        return ShellResult(
            exit_status=exit_status,
            window_size=window_size,
            cleanup_errors=list(self.cleanup_errors),
        )

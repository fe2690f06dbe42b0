"""Interactive shell subcommand."""

from __future__ import annotations

import logging as py_logging
import sys
from typing import IO, TextIO

from gardenctl.errors import ValidationError
from gardenctl.garden.client import GardenClient
from gardenctl.shell.session import ShellSession
from gardenctl.terminal.control import TerminalControl

logger = py_logging.getLogger(__name__)


def resolve_handle(handle: str | None, default_handle: str) -> str:
    resolved = (handle or "").strip() or default_handle.strip()
    if not resolved:
        raise ValidationError(
            "No container handle given.",
            hint="Pass a handle or set default_handle in the config file.",
        )
    return resolved


def open_shell(
    client: GardenClient,
    handle: str,
    *,
    user: str,
    shell_path: str = "",
    control: TerminalControl | None = None,
    stdin: IO[str] | IO[bytes] | None = None,
    stdout: IO[str] | IO[bytes] | None = None,
    stderr: IO[str] | IO[bytes] | None = None,
    diagnostics: TextIO | None = None,
) -> int:
    logger.debug("Opening shell handle=%s user=%s", handle, user)
    container = client.lookup(handle)
    session = ShellSession(
        container,
        user=user,
        shell_path=shell_path,
        control=control,
        stdin=stdin,
        stdout=stdout,
        stderr=stderr,
    )
    try:
        result = session.run()
    finally:
        # Restore failures are reported but never change the exit status.
        for error in session.cleanup_errors:
            print(f"Warning: {error}", file=diagnostics or sys.stderr)
    return result.exit_status

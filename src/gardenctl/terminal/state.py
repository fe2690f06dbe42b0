"""Scoped raw-mode acquisition with guaranteed restore."""

from __future__ import annotations

import logging as py_logging
from types import TracebackType

from gardenctl.errors import TerminalStateError
from gardenctl.terminal.control import TerminalControl
from gardenctl.terminal.models import StreamDirection, TerminalDescriptor, TerminalModeSnapshot

logger = py_logging.getLogger(__name__)


def capture_and_set_raw(control: TerminalControl, descriptor: TerminalDescriptor) -> TerminalModeSnapshot:
    payload = control.make_raw_input(descriptor.fd)
    logger.debug("Switched fd=%s to raw input mode", descriptor.fd)
    return TerminalModeSnapshot(descriptor=descriptor, payload=payload)


def capture_and_set_raw_output(control: TerminalControl, descriptor: TerminalDescriptor) -> TerminalModeSnapshot:
    payload = control.make_raw_output(descriptor.fd)
    logger.debug("Switched fd=%s to raw output mode", descriptor.fd)
    return TerminalModeSnapshot(descriptor=descriptor, payload=payload)


def restore(control: TerminalControl, snapshot: TerminalModeSnapshot) -> None:
    """Reinstall a captured mode; a second call for the same snapshot does nothing."""
    if snapshot.restored:
        return
    control.restore(snapshot.descriptor.fd, snapshot.payload)
    snapshot.restored = True
    logger.debug("Restored terminal mode fd=%s", snapshot.descriptor.fd)


class RawModeGuard:
    """Holds one descriptor in raw mode for the duration of a ``with`` block.

    Capture failures propagate from ``__enter__`` and leave nothing to undo.
    Restore failures on exit are recorded in ``restore_error`` and logged so
    they never replace an exception already in flight.
    """

    def __init__(self, control: TerminalControl, descriptor: TerminalDescriptor) -> None:
        self.control = control
        self.descriptor = descriptor
        self.snapshot: TerminalModeSnapshot | None = None
        self.restore_error: TerminalStateError | None = None
        self._released = False

    def __enter__(self) -> TerminalModeSnapshot:
        if self.snapshot is not None:
            raise TerminalStateError(f"Terminal mode for fd={self.descriptor.fd} already captured.")
        if self.descriptor.direction == StreamDirection.OUTPUT:
            self.snapshot = capture_and_set_raw_output(self.control, self.descriptor)
        else:
            self.snapshot = capture_and_set_raw(self.control, self.descriptor)
        return self.snapshot

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        self.release()
        return False

    def release(self) -> None:
        if self.snapshot is None or self._released:
            return
        self._released = True
        try:
            restore(self.control, self.snapshot)
        except TerminalStateError as error:
            self.restore_error = error
            logger.error("Terminal restore failed fd=%s: %s", self.descriptor.fd, error)

from __future__ import annotations

import io

import pytest

from gardenctl.errors import NotATerminalError, TerminalStateError
from gardenctl.terminal import (
    StreamDirection,
    TerminalDescriptor,
    detect_std_streams,
    read_window_size,
    require_terminals,
)


class _Stream:
    def __init__(self, fd: int) -> None:
        self._fd = fd

    def fileno(self) -> int:
        return self._fd


class _Control:
    def __init__(self, terminals: set[int], size: tuple[int, int] = (132, 43)) -> None:
        self.terminals = terminals
        self.size = size

    def is_terminal(self, fd: int) -> bool:
        return fd in self.terminals

    def window_size(self, fd: int) -> tuple[int, int]:
        return self.size


def test_detects_descriptors_for_both_streams() -> None:
    stdin_desc, stdout_desc = detect_std_streams(_Stream(10), _Stream(11), _Control({10, 11}))

    assert stdin_desc == TerminalDescriptor(fd=10, is_terminal=True, direction=StreamDirection.INPUT)
    assert stdout_desc == TerminalDescriptor(fd=11, is_terminal=True, direction=StreamDirection.OUTPUT)


def test_streams_without_fileno_are_not_terminals() -> None:
    stdin_desc, stdout_desc = detect_std_streams(io.StringIO(), None, _Control({0, 1}))

    assert stdin_desc.is_terminal is False
    assert stdout_desc.is_terminal is False


@pytest.mark.parametrize(("terminals", "missing"), [({11}, "input"), ({10}, "output"), (set(), "input and output")])
def test_require_terminals_names_the_missing_stream(terminals: set[int], missing: str) -> None:
    descriptors = detect_std_streams(_Stream(10), _Stream(11), _Control(terminals))

    with pytest.raises(NotATerminalError) as exc:
        require_terminals(*descriptors)
    assert f"({missing} is not a terminal)" in exc.value.message


def test_read_window_size_returns_columns_and_rows() -> None:
    descriptor = TerminalDescriptor(fd=11, is_terminal=True, direction=StreamDirection.OUTPUT)

    size = read_window_size(_Control({11}, size=(132, 43)), descriptor)

    assert (size.columns, size.rows) == (132, 43)


def test_read_window_size_rejects_zero_dimensions() -> None:
    descriptor = TerminalDescriptor(fd=11, is_terminal=True, direction=StreamDirection.OUTPUT)

    with pytest.raises(TerminalStateError):
        read_window_size(_Control({11}, size=(0, 24)), descriptor)


def test_read_window_size_requires_a_terminal() -> None:
    descriptor = TerminalDescriptor(fd=11, is_terminal=False, direction=StreamDirection.OUTPUT)

    with pytest.raises(TerminalStateError):
        read_window_size(_Control(set()), descriptor)

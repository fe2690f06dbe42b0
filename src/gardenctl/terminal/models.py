"""Local terminal domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class StreamDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


@dataclass(frozen=True)
class TerminalDescriptor:
    """Addressable handle for one of the process's standard streams.

    The descriptor is resolved once at session start and never closed here;
    the underlying stream outlives the session.
    """

    fd: int
    is_terminal: bool
    direction: StreamDirection = StreamDirection.INPUT


@dataclass(frozen=True)
class WindowSize:
    columns: int
    rows: int

    def __post_init__(self) -> None:
        if self.columns < 0 or self.rows < 0:
            raise ValueError(f"Invalid window size: {self.columns}x{self.rows}")

    def to_dict(self) -> dict[str, int]:
        return {"columns": self.columns, "rows": self.rows}


@dataclass
class TerminalModeSnapshot:
    """Captured terminal configuration, restorable exactly once."""

    descriptor: TerminalDescriptor
    payload: object
    restored: bool = field(default=False, compare=False)

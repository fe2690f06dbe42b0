"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    TRANSPORT_ERROR = 5
    NOT_FOUND = 6
    VALIDATION_ERROR = 7
    NOT_A_TERMINAL = 8
    TERMINAL_ERROR = 9


@dataclass
class GardenCtlError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class NotATerminalError(GardenCtlError):
    code: ExitCode = ExitCode.NOT_A_TERMINAL
    hint: str = "Run this command from an interactive terminal."


@dataclass
class TerminalStateError(GardenCtlError):
    code: ExitCode = ExitCode.TERMINAL_ERROR


@dataclass
class TransportError(GardenCtlError):
    code: ExitCode = ExitCode.TRANSPORT_ERROR


@dataclass
class ContainerNotFoundError(GardenCtlError):
    code: ExitCode = ExitCode.NOT_FOUND
    hint: str = "Check the handle with `gardenctl list`."


@dataclass
class ValidationError(GardenCtlError):
    code: ExitCode = ExitCode.VALIDATION_ERROR


@dataclass
class ConfigError(GardenCtlError):
    code: ExitCode = ExitCode.CONFIG_ERROR


def user_facing_error(message: str, *, hint: str = "") -> str:
    message = message.rstrip(".")
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."

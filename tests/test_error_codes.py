from __future__ import annotations

from gardenctl.errors import (
    ContainerNotFoundError,
    ExitCode,
    GardenCtlError,
    NotATerminalError,
    TerminalStateError,
    TransportError,
    ValidationError,
    user_facing_error,
)
from gardenctl.logging import LOG_LEVELS, configure_logging


def test_exit_codes_are_deterministic() -> None:
    assert int(ExitCode.SUCCESS) == 0
    assert int(ExitCode.INVALID_ARGS) == 2
    assert int(ExitCode.TRANSPORT_ERROR) == 5
    assert int(ExitCode.NOT_A_TERMINAL) == 8
    assert int(ExitCode.TERMINAL_ERROR) == 9


def test_error_string_contains_hint() -> None:
    err = GardenCtlError("garden unreachable", code=ExitCode.TRANSPORT_ERROR, hint="Start the server")
    assert "Start the server" in str(err)


def test_error_subclasses_carry_their_exit_codes() -> None:
    assert NotATerminalError("no tty").code == ExitCode.NOT_A_TERMINAL
    assert TerminalStateError("tcsetattr failed").code == ExitCode.TERMINAL_ERROR
    assert TransportError("connection reset").code == ExitCode.TRANSPORT_ERROR
    assert ContainerNotFoundError("missing").code == ExitCode.NOT_FOUND
    assert ValidationError("bad flag").code == ExitCode.VALIDATION_ERROR


def test_not_a_terminal_error_tells_user_to_use_a_terminal() -> None:
    err = NotATerminalError("stdin is not a terminal")
    assert "terminal" in err.hint.lower()
    assert isinstance(err, GardenCtlError)


def test_user_facing_error_template() -> None:
    text = user_facing_error("Container not found: box", hint="Check the handle")
    assert text.startswith("Error:")
    assert "Next step" in text


def test_user_facing_error_does_not_double_trailing_period() -> None:
    assert user_facing_error("Failed to start remote process.") == "Error: Failed to start remote process."


def test_logging_levels() -> None:
    logger = configure_logging("WARN")
    assert logger.level == LOG_LEVELS["WARN"]

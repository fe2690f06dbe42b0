"""Application logging helpers.

Diagnostics go to stderr, which shares the user's terminal with the remote
shell. While a session holds the terminal in raw mode the kernel no longer
turns ``\\n`` into ``\\r\\n``, so the stderr handler can be switched to emit
carriage returns itself for the duration of the session.
"""

from __future__ import annotations

import logging as py_logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

LOGGER_NAME = "gardenctl"
LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "WARNING": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
DEFAULT_LOG_PATH = Path("~/.config/gardenctl/logs/gardenctl.log")
_FALLBACK_LOG_PATH = Path(".gardenctl/logs/gardenctl.log")
_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"
_RAW_TERMINATOR = "\r\n"


class TerminalStreamHandler(py_logging.StreamHandler):
    """Stream handler whose line endings follow the terminal's raw state."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(stream)
        self.raw_terminal = False

    def set_raw_terminal(self, enabled: bool) -> None:
        self.raw_terminal = enabled
        self.terminator = _RAW_TERMINATOR if enabled else "\n"

    def format(self, record: py_logging.LogRecord) -> str:
        text = super().format(record)
        if self.raw_terminal:
            # Tracebacks span several lines.
            text = text.replace("\r\n", "\n").replace("\n", _RAW_TERMINATOR)
        return text


def default_log_path() -> Path:
    try:
        resolved = DEFAULT_LOG_PATH.expanduser()
    except RuntimeError:
        resolved = (Path.cwd() / _FALLBACK_LOG_PATH).resolve()
    else:
        if not resolved.is_absolute():
            resolved = resolved.resolve()
    return resolved


def normalize_level(level: str) -> str:
    normalized = level.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    return normalized


def _add_file_handler(logger: py_logging.Logger, log_file: str | Path, formatter: py_logging.Formatter) -> None:
    try:
        log_path = Path(log_file).expanduser()
    except RuntimeError:
        log_path = Path(log_file)
    if not log_path.is_absolute():
        log_path = log_path.resolve()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = py_logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        return
    file_handler.setLevel(py_logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def configure_logging(
    level: str = "WARN",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    resolved = LOG_LEVELS.get(normalize_level(level), py_logging.INFO)

    logger = py_logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    formatter = py_logging.Formatter(_FORMAT)

    handler = TerminalStreamHandler(stream or sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if log_file:
        _add_file_handler(logger, log_file, formatter)

    logger.propagate = False
    return logger


@contextmanager
def raw_terminal_logging(name: str = LOGGER_NAME) -> Iterator[None]:
    """Emit ``\\r\\n`` line endings on terminal handlers until the block exits."""
    handlers = [
        handler for handler in py_logging.getLogger(name).handlers if isinstance(handler, TerminalStreamHandler)
    ]
    previous = [handler.raw_terminal for handler in handlers]
    for handler in handlers:
        handler.set_raw_terminal(True)
    try:
        yield
    finally:
        for handler, was_raw in zip(handlers, previous):
            handler.set_raw_terminal(was_raw)

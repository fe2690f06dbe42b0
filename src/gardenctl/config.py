"""XDG config loading/saving for the Garden client."""

from __future__ import annotations

import os
import sys
from contextlib import suppress
from pathlib import Path
from typing import Literal, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from gardenctl.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("~/.config/gardenctl/config.toml").expanduser()
DEFAULT_TARGET = "localhost:7777"
DEFAULT_NETWORK: Literal["tcp", "unix"] = "tcp"
DEFAULT_USER = "root"
DEFAULT_TIMEOUT_SECONDS = 30
TARGET_ENV = "GARDENCTL_TARGET"
NETWORK_ENV = "GARDENCTL_NETWORK"

_VALID_NETWORKS = {"tcp", "unix"}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARN", "ERROR"}


class ClientConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    target: str = DEFAULT_TARGET
    network: Literal["tcp", "unix"] = DEFAULT_NETWORK
    default_user: str = DEFAULT_USER
    default_handle: str = ""
    shell_path: str = ""
    timeout_seconds: int = Field(default=DEFAULT_TIMEOUT_SECONDS, ge=1, le=600)
    log_level: str = "WARN"

    @field_validator("target")
    @classmethod
    def _validate_target(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Garden target cannot be empty")
        return cleaned

    @field_validator("default_user")
    @classmethod
    def _validate_user(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Default user cannot be empty")
        return cleaned

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized == "WARNING":
            normalized = "WARN"
        if normalized not in _VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value}")
        return normalized


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _toml_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Unsupported TOML scalar type: {type(value)!r}")


def _non_empty_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _sanitize(raw: dict[str, object]) -> ClientConfig:
    cfg = ClientConfig()

    target = _non_empty_str(raw.get("target"))
    if target is not None:
        cfg.target = target

    network = raw.get("network", cfg.network)
    if isinstance(network, str) and network in _VALID_NETWORKS:
        cfg.network = cast(Literal["tcp", "unix"], network)

    default_user = _non_empty_str(raw.get("default_user"))
    if default_user is not None:
        cfg.default_user = default_user

    default_handle = raw.get("default_handle", cfg.default_handle)
    if isinstance(default_handle, str):
        cfg.default_handle = default_handle.strip()

    shell_path = raw.get("shell_path", cfg.shell_path)
    if isinstance(shell_path, str):
        cfg.shell_path = shell_path.strip()

    timeout_seconds = raw.get("timeout_seconds", cfg.timeout_seconds)
    if isinstance(timeout_seconds, int) and not isinstance(timeout_seconds, bool) and 1 <= timeout_seconds <= 600:
        cfg.timeout_seconds = timeout_seconds

    log_level = raw.get("log_level", cfg.log_level)
    if isinstance(log_level, str) and log_level.upper().replace("WARNING", "WARN") in _VALID_LOG_LEVELS:
        cfg.log_level = log_level

    return cfg


def apply_environment(config: ClientConfig, environ: dict[str, str] | None = None) -> ClientConfig:
    env = os.environ if environ is None else environ
    target = env.get(TARGET_ENV, "").strip()
    if target:
        config.target = target
    network = env.get(NETWORK_ENV, "").strip().lower()
    if network:
        if network not in _VALID_NETWORKS:
            raise ConfigError(
                f"Invalid {NETWORK_ENV} value: {network}",
                hint="Use tcp or unix.",
            )
        config.network = cast(Literal["tcp", "unix"], network)
    return config


def load_config(
    path: str | Path | None = None,
    *,
    environ: dict[str, str] | None = None,
) -> ClientConfig:
    resolved = get_config_path(path)
    cfg = ClientConfig()
    if resolved.exists():
        try:
            with resolved.open("rb") as handle:
                raw = tomllib.load(handle)
        except (tomllib.TOMLDecodeError, OSError):
            raw = {}
        if isinstance(raw, dict):
            cfg = _sanitize(raw)
    return apply_environment(cfg, environ)


def save_config(config: ClientConfig, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        f"target = {_toml_scalar(config.target)}",
        f"network = {_toml_scalar(config.network)}",
        f"default_user = {_toml_scalar(config.default_user)}",
        f"default_handle = {_toml_scalar(config.default_handle)}",
        f"shell_path = {_toml_scalar(config.shell_path)}",
        f"timeout_seconds = {_toml_scalar(config.timeout_seconds)}",
        f"log_level = {_toml_scalar(config.log_level)}",
    ]

    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with suppress(OSError):
        resolved.chmod(0o600)
    return resolved

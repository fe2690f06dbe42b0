"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .commands.create import CreateOptions, create_container
from .commands.shell import open_shell, resolve_handle
from .config import ClientConfig, load_config, save_config
from .errors import ConfigError, ExitCode, GardenCtlError, user_facing_error
from .garden.client import GardenClient
from .logging import configure_logging, default_log_path, normalize_level

_VALID_NETWORKS = ("tcp", "unix")
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")
_INTERRUPTED_EXIT = 130

ClientFactory = Callable[[ClientConfig], GardenClient]


def _log_level_type(value: str) -> str:
    normalized = normalize_level(value)
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _property_type(value: str) -> tuple[str, str]:
    key, sep, prop = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError("--property must look like key=value")
    return key.strip(), prop


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gardenctl", description="Garden container client.")
    parser.add_argument("-t", "--target", default=None, help="Garden server address")
    parser.add_argument("--network", choices=_VALID_NETWORKS, default=None)
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default=None)
    parser.add_argument("--log-file", type=Path, default=None)

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    commands.add_parser("ping", help="check that the server is reachable")

    list_parser = commands.add_parser("list", help="list container handles")
    list_parser.add_argument("-p", "--property", dest="properties", type=_property_type, action="append", default=[])

    create = commands.add_parser("create", help="create a container")
    create.add_argument("-n", "--handle", default="", help="name to give container")
    create.add_argument("-r", "--rootfs", default="", help="rootfs image with which to create the container")
    create.add_argument("-e", "--env", action="append", default=[], help="set environment variables")
    create.add_argument("-g", "--grace", default="", help="grace time (resetting ttl) of container")
    create.add_argument(
        "-p",
        "--privileged",
        action="store_true",
        help="privileged user in the container is privileged in the host",
    )
    create.add_argument("--network", dest="container_network", default="", help="the subnet of the container")
    create.add_argument(
        "-m",
        "--bind-mount",
        dest="bind_mounts",
        action="append",
        default=[],
        help="bind mount host-path:container-path",
    )
    create.add_argument(
        "-i",
        "--net-in",
        dest="net_in",
        action="append",
        default=[],
        help="map a host port to a container port",
    )
    create.add_argument(
        "-o",
        "--net-out",
        dest="net_out",
        action="append",
        default=[],
        help="whitelist outbound network traffic",
    )

    destroy = commands.add_parser("destroy", help="destroy containers")
    destroy.add_argument("handles", nargs="+")

    shell = commands.add_parser("shell", help="open an interactive shell in a container")
    shell.add_argument("handle", nargs="?", default=None)
    shell.add_argument("-u", "--user", default=None, help="user to open shell as")
    shell.add_argument("--shell", dest="shell_path", default=None, help="shell executable inside the container")

    config = commands.add_parser("config", help="save client defaults to the config file")
    config.add_argument("--default-user", default=None, help="user for shell when -u is not given")
    config.add_argument("--default-handle", default=None, help="container for shell when no handle is given")
    config.add_argument("--default-shell", default=None, help="shell executable when --shell is not given")
    config.add_argument("--timeout", type=int, default=None, help="request timeout in seconds")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def resolve_config(namespace: argparse.Namespace) -> ClientConfig:
    config = load_config(namespace.config)
    if namespace.target:
        config.target = namespace.target
    if namespace.network:
        config.network = namespace.network
    if namespace.log_level:
        config.log_level = namespace.log_level
    return config


def save_defaults(namespace: argparse.Namespace) -> Path:
    """Persist global flags and ``config`` options; environment overrides are not saved."""
    config = load_config(namespace.config, environ={})
    updates = {
        "target": namespace.target,
        "network": namespace.network,
        "log_level": namespace.log_level,
        "default_user": namespace.default_user,
        "default_handle": namespace.default_handle,
        "shell_path": namespace.default_shell,
        "timeout_seconds": namespace.timeout,
    }
    for name, value in updates.items():
        if value is None:
            continue
        try:
            setattr(config, name, value)
        except PydanticValidationError as exc:
            reason = exc.errors()[0]["msg"] if exc.errors() else str(exc)
            raise ConfigError(
                f"Invalid value for {name}: {reason}",
                hint="Fix the option and run `gardenctl config` again.",
            ) from exc
    return save_config(config, namespace.config)


def run_command(namespace: argparse.Namespace, client: GardenClient) -> int:
    config = client.config
    if namespace.command == "ping":
        client.ping()
        print("ok")
    elif namespace.command == "list":
        for handle in client.list(dict(namespace.properties)):
            print(handle)
    elif namespace.command == "create":
        options = CreateOptions(
            handle=namespace.handle,
            rootfs=namespace.rootfs,
            env=tuple(namespace.env),
            grace=namespace.grace,
            privileged=namespace.privileged,
            network=namespace.container_network,
            bind_mounts=tuple(namespace.bind_mounts),
            net_in=tuple(namespace.net_in),
            net_out=tuple(namespace.net_out),
        )
        print(create_container(client, options))
    elif namespace.command == "destroy":
        for handle in namespace.handles:
            client.destroy(handle)
    elif namespace.command == "shell":
        return open_shell(
            client,
            resolve_handle(namespace.handle, config.default_handle),
            user=namespace.user or config.default_user,
            shell_path=namespace.shell_path or config.shell_path,
        )
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    client_factory: ClientFactory | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()

    try:
        config = resolve_config(namespace)
        logger = configure_logging(level=config.log_level, log_file=log_path)
        logger.debug("Running command=%s target=%s network=%s", namespace.command, config.target, config.network)
        if namespace.command == "config":
            print(save_defaults(namespace))
            return int(ExitCode.SUCCESS)
        factory = client_factory or GardenClient
        return run_command(namespace, factory(config))
    except GardenCtlError as exc:
        logger.error(
            "Handled %s (code=%s): %s",
            type(exc).__name__,
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return _INTERRUPTED_EXIT
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        try:
            hint = f"Inspect logs: {log_path}"
            print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        except Exception:
            pass
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)

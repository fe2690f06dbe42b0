from __future__ import annotations

import io
import json
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

import pytest

from gardenctl import cli
from gardenctl.config import ClientConfig, load_config
from gardenctl.errors import ExitCode
from gardenctl.garden.client import GardenClient


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr("gardenctl.config.DEFAULT_CONFIG_PATH", tmp_path / "config.toml")
    monkeypatch.setattr("gardenctl.cli.default_log_path", lambda: tmp_path / "gardenctl.log")
    monkeypatch.delenv("GARDENCTL_TARGET", raising=False)
    monkeypatch.delenv("GARDENCTL_NETWORK", raising=False)


def _factory(responses: dict[tuple[str, str], tuple[int, str]], seen: list[ClientConfig] | None = None):
    calls: list[tuple[str, str, bytes | None]] = []

    def requester(method: str, path: str, body: bytes | None, headers: dict[str, str]) -> tuple[int, str]:
        calls.append((method, path, body))
        return responses.get((method, path), (404, '{"message":"not found"}'))

    def factory(config: ClientConfig) -> GardenClient:
        if seen is not None:
            seen.append(config)
        return GardenClient(config, requester=requester)

    factory.calls = calls  # type: ignore[attr-defined]
    return factory


def test_cli_help_includes_subcommands() -> None:
    help_text = cli.build_parser().format_help()
    for command in ("ping", "list", "create", "destroy", "shell"):
        assert command in help_text


def test_create_help_includes_public_flags() -> None:
    parser = cli.build_parser()
    args = parser.parse_args(["create", "-m", "/a:/b", "-i", "80:8080", "-o", "1.2.3.4", "-p"])
    assert args.bind_mounts == ["/a:/b"]
    assert args.net_in == ["80:8080"]
    assert args.net_out == ["1.2.3.4"]
    assert args.privileged is True


def test_shell_defaults_user_to_config() -> None:
    args = cli.parse_args(["shell", "box"])
    assert args.user is None
    assert args.handle == "box"


def test_missing_subcommand_is_rejected() -> None:
    with redirect_stderr(io.StringIO()):
        assert cli.main([]) == 2


def test_invalid_log_level_is_rejected() -> None:
    with redirect_stderr(io.StringIO()):
        assert cli.main(["--log-level", "loud", "ping"]) == 2


def test_ping_prints_ok() -> None:
    stdout = io.StringIO()
    with redirect_stdout(stdout):
        code = cli.main(["ping"], client_factory=_factory({("GET", "/ping"): (200, "")}))

    assert code == 0
    assert stdout.getvalue().strip() == "ok"


def test_target_flag_overrides_config() -> None:
    seen: list[ClientConfig] = []
    with redirect_stdout(io.StringIO()):
        cli.main(
            ["--target", "garden.example:7777", "--log-level", "warning", "ping"],
            client_factory=_factory({("GET", "/ping"): (200, "")}, seen),
        )

    assert seen[0].target == "garden.example:7777"
    assert seen[0].log_level == "WARN"


def test_list_prints_one_handle_per_line() -> None:
    stdout = io.StringIO()
    factory = _factory({("GET", "/containers?owner=me"): (200, '{"handles":["a","b"]}')})
    with redirect_stdout(stdout):
        code = cli.main(["list", "-p", "owner=me"], client_factory=factory)

    assert code == 0
    assert stdout.getvalue().splitlines() == ["a", "b"]


def test_create_prints_new_handle() -> None:
    stdout = io.StringIO()
    factory = _factory({("POST", "/containers"): (200, '{"handle":"made-1"}')})
    with redirect_stdout(stdout):
        code = cli.main(
            ["create", "-n", "made-1", "-g", "10m", "--network", "10.254.0.0/24", "-e", "A=1"],
            client_factory=factory,
        )

    assert code == 0
    assert stdout.getvalue().strip() == "made-1"
    payload = json.loads(factory.calls[0][2])  # type: ignore[attr-defined]
    assert payload["network"] == "10.254.0.0/24"
    assert payload["env"] == ["A=1"]


def test_invalid_bind_mount_returns_validation_error() -> None:
    stderr = io.StringIO()
    with redirect_stderr(stderr):
        code = cli.main(["create", "-m", "nocolon"], client_factory=_factory({}))

    assert code == int(ExitCode.VALIDATION_ERROR)
    assert "host-path:container-path" in stderr.getvalue()


def test_destroy_unknown_container_returns_not_found() -> None:
    stderr = io.StringIO()
    with redirect_stderr(stderr):
        code = cli.main(["destroy", "ghost"], client_factory=_factory({}))

    assert code == int(ExitCode.NOT_FOUND)
    assert "ghost" in stderr.getvalue()


def test_shell_requires_a_terminal(monkeypatch) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO())
    factory = _factory({("GET", "/containers/box/info"): (200, "{}")})
    stderr = io.StringIO()
    with redirect_stderr(stderr):
        code = cli.main(["shell", "box"], client_factory=factory)

    assert code == int(ExitCode.NOT_A_TERMINAL)
    assert "terminal" in stderr.getvalue()


def test_shell_without_handle_or_default_is_rejected() -> None:
    with redirect_stderr(io.StringIO()):
        code = cli.main(["shell"], client_factory=_factory({}))

    assert code == int(ExitCode.VALIDATION_ERROR)


def test_unexpected_errors_map_to_runtime_error() -> None:
    def factory(config: ClientConfig) -> GardenClient:
        raise RuntimeError("boom")

    stderr = io.StringIO()
    with redirect_stderr(stderr):
        code = cli.main(["ping"], client_factory=factory)

    assert code == int(ExitCode.RUNTIME_ERROR)
    assert "Inspect logs" in stderr.getvalue()


def test_config_command_saves_defaults_used_by_later_runs(tmp_path: Path) -> None:
    path = tmp_path / "saved.toml"
    stdout = io.StringIO()
    with redirect_stdout(stdout):
        code = cli.main(
            [
                "--config",
                str(path),
                "--target",
                "garden.lan:7777",
                "config",
                "--default-handle",
                "dev-box",
                "--default-user",
                "vcap",
                "--timeout",
                "45",
            ]
        )

    assert code == 0
    assert stdout.getvalue().strip() == str(path)
    saved = load_config(path, environ={})
    assert saved.target == "garden.lan:7777"
    assert saved.default_handle == "dev-box"
    assert saved.default_user == "vcap"
    assert saved.timeout_seconds == 45
    assert saved.network == "tcp"


def test_config_command_does_not_persist_environment_overrides(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "saved.toml"
    monkeypatch.setenv("GARDENCTL_TARGET", "from-env:7777")

    with redirect_stdout(io.StringIO()):
        code = cli.main(["--config", str(path), "config", "--default-handle", "dev-box"])

    assert code == 0
    assert load_config(path, environ={}).target == "localhost:7777"


def test_config_command_rejects_out_of_range_timeout(tmp_path: Path) -> None:
    path = tmp_path / "saved.toml"
    stderr = io.StringIO()
    with redirect_stderr(stderr):
        code = cli.main(["--config", str(path), "config", "--timeout", "0"])

    assert code == int(ExitCode.CONFIG_ERROR)
    assert "timeout_seconds" in stderr.getvalue()
    assert not path.exists()

"""Interactive remote shell sessions."""

from .launcher import ProcessHost, RemoteProcess, build_shell_spec, default_shell_path, launch_remote_shell
from .session import SessionState, ShellResult, ShellSession

__all__ = [
    "build_shell_spec",
    "default_shell_path",
    "launch_remote_shell",
    "ProcessHost",
    "RemoteProcess",
    "SessionState",
    "ShellResult",
    "ShellSession",
]

"""Shell detection and launch configuration."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field

from shellsignal.models import ShellSignalConfig
from shellsignal.shell.constants import ACTIVE_ENV_VAR
from shellsignal.shell.hooks import (
    write_bash_rcfile,
    write_fish_init,
    write_powershell_profile,
    write_xonsh_rcfile,
    write_zsh_rcdir,
)

log = logging.getLogger(__name__)

SUPPORTED_SHELLS = ("bash", "zsh", "fish", "powershell", "xonsh")


class UnsupportedShellError(RuntimeError):
    """Raised when no supported shell can be found or launched."""


@dataclass
class ShellLaunchConfig:
    """Everything needed to exec an instrumented interactive shell."""

    kind: str
    executable: str
    argv: list[str]
    env: dict[str, str]
    cleanup_paths: list[str] = field(default_factory=list)


def _classify_shell(value: str) -> str | None:
    """Map a shell name or path to a supported dialect name."""
    name = os.path.basename(value.strip()).lower()
    if name.endswith(".exe"):
        name = name[: -len(".exe")]
    if name.startswith("-"):
        # Login shells show up as "-bash" in $0.
        name = name[1:]
    if name in {"pwsh", "powershell"}:
        return "powershell"
    if name in SUPPORTED_SHELLS:
        return name
    return None


def _resolve_executable(value: str) -> str | None:
    if os.path.sep in value:
        return value if os.access(value, os.X_OK) else None
    return shutil.which(value)


def _shell_candidates(preferred: str | None = None) -> list[str]:
    """Return shells to try, most preferred first."""
    candidates: list[str] = []
    for value in (preferred, os.environ.get("SHELLSIGNAL_SHELL"), os.environ.get("SHELL")):
        if value:
            candidates.append(value)
    if os.name == "nt":
        candidates.extend(["pwsh", "powershell"])
    else:
        candidates.extend(["bash", "zsh", "fish", "pwsh"])
    unique: list[str] = []
    for candidate in candidates:
        if candidate not in unique:
            unique.append(candidate)
    return unique


def _detect_shell(preferred: str | None = None) -> tuple[str, str]:
    """Return ``(kind, executable)`` for the first usable supported shell.

    Raises:
        UnsupportedShellError: If an explicitly requested shell is unsupported
            or missing, or no fallback shell is installed.
    """
    if preferred:
        kind = _classify_shell(preferred)
        if kind is None:
            raise UnsupportedShellError(
                f"unsupported shell {preferred!r} (supported: {', '.join(SUPPORTED_SHELLS)})"
            )
        executable = _resolve_executable(preferred)
        if executable is None:
            raise UnsupportedShellError(f"shell {preferred!r} was not found")
        return kind, executable

    for candidate in _shell_candidates():
        kind = _classify_shell(candidate)
        if kind is None:
            log.debug("skipping unsupported shell %s", candidate)
            continue
        executable = _resolve_executable(candidate)
        if executable:
            return kind, executable
    raise UnsupportedShellError("no supported shell found (tried bash, zsh, fish, pwsh)")


def _build_shell_launch_config(config: ShellSignalConfig | None = None) -> ShellLaunchConfig:
    """Detect the shell and write the bootstrap files that install the hooks.

    The bootstrap loads the user's normal configuration first, then the
    hooks, then leaves the shell at its interactive prompt.
    """
    if config is None:
        config = ShellSignalConfig()
    kind, executable = _detect_shell(config.shell)
    channel = config.channel
    source_user_config = config.source_user_config

    env = os.environ.copy()
    env[ACTIVE_ENV_VAR] = "1"
    env["SHELLSIGNAL_CHANNEL"] = str(channel)

    if kind == "bash":
        rcfile = write_bash_rcfile(channel, source_user_config)
        argv = [executable, "--rcfile", rcfile, "-i"]
        cleanup = [rcfile]
    elif kind == "zsh":
        rcdir = write_zsh_rcdir(channel, source_user_config)
        env["SHELLSIGNAL_USER_ZDOTDIR"] = os.environ.get("ZDOTDIR") or os.path.expanduser("~")
        env["ZDOTDIR"] = rcdir
        argv = [executable, "-i"]
        cleanup = [rcdir]
    elif kind == "fish":
        init = write_fish_init(channel)
        argv = [executable, "-i", "--init-command", f"source {init}"]
        if not source_user_config:
            argv.insert(1, "--no-config")
        cleanup = [init]
    elif kind == "powershell":
        profile = write_powershell_profile(channel)
        argv = [executable, "-NoLogo", "-NoExit", "-Command", f". '{profile}'"]
        if not source_user_config:
            argv.insert(1, "-NoProfile")
        cleanup = [profile]
    else:
        rcfile = write_xonsh_rcfile(channel, source_user_config)
        argv = [executable, "-i", "--rc", rcfile]
        cleanup = [rcfile]

    log.debug("launching %s shell: %s", kind, argv)
    return ShellLaunchConfig(
        kind=kind, executable=executable, argv=argv, env=env, cleanup_paths=cleanup
    )

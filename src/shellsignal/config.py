"""Configuration for shellsignal."""

import json
import logging
import os
import secrets
import stat
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from shellsignal.models import ShellSignalConfig

log = logging.getLogger(__name__)

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "ShellSignalConfig",
    "load_config",
    "save_config",
]

CONFIG_DIR = Path.home() / ".shellsignal"
CONFIG_FILE = CONFIG_DIR / "config.json"
BOOLEAN_TRUE_STRINGS = {"1", "true", "yes", "on"}
BOOLEAN_FALSE_STRINGS = {"0", "false", "no", "off"}


def load_config(env_overrides: bool = True) -> ShellSignalConfig:
    """Load config from file, with env var overrides.

    Reads ``~/.shellsignal/config.json`` and applies environment variable
    overrides (``SHELLSIGNAL_SHELL``, ``SHELLSIGNAL_CHANNEL``,
    ``SHELLSIGNAL_LOG_FILE`` and ``SHELLSIGNAL_CAPTURE_OUTPUT``). Falls back
    to defaults when the file is absent or does not hold a valid config.

    Args:
        env_overrides: Apply the environment variables. ``configure`` turns
            this off so that they are not written back to the file.

    Returns:
        The resolved ``ShellSignalConfig`` instance.
    """
    raw_config: dict[str, Any] = {}

    _ensure_config_dir_permissions(create=False)
    _ensure_config_file_permissions()

    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE) as f:
                loaded = json.load(f)
        except json.JSONDecodeError as exc:
            log.warning(
                "invalid config JSON in %s (%s); falling back to defaults",
                CONFIG_FILE,
                exc,
            )
        else:
            if isinstance(loaded, dict):
                raw_config = loaded
            log.debug("loaded config from %s", CONFIG_FILE)

    try:
        config = ShellSignalConfig.model_validate(raw_config)
    except ValidationError as exc:
        log.warning("invalid config in %s (%s); falling back to defaults", CONFIG_FILE, exc)
        config = ShellSignalConfig()

    if not env_overrides:
        return config

    # Env var overrides
    if shell := os.environ.get("SHELLSIGNAL_SHELL"):
        config.shell = shell
    if channel_raw := os.environ.get("SHELLSIGNAL_CHANNEL"):
        try:
            config.channel = int(channel_raw)
        except ValueError:
            log.warning("ignoring non-numeric SHELLSIGNAL_CHANNEL=%r", channel_raw)
    if log_file := os.environ.get("SHELLSIGNAL_LOG_FILE"):
        config.log_file = log_file
    if capture_raw := os.environ.get("SHELLSIGNAL_CAPTURE_OUTPUT"):
        normalized = capture_raw.strip().lower()
        if normalized in BOOLEAN_TRUE_STRINGS:
            config.capture_output = True
        elif normalized in BOOLEAN_FALSE_STRINGS:
            config.capture_output = False

    return config


def save_config(config: ShellSignalConfig) -> None:
    """Save config to file.

    Writes ``~/.shellsignal/config.json`` atomically (temp file + rename) with
    0o600 permissions so the file is only readable by the owner.

    Args:
        config: Configuration to persist.

    Raises:
        OSError: If the config directory or file cannot be created or written.
    """
    _ensure_config_dir_permissions(create=True)
    temp_file = CONFIG_DIR / f".{CONFIG_FILE.name}.{os.getpid()}.{secrets.token_hex(8)}.tmp"
    fd = os.open(temp_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(config.model_dump(exclude_none=True), f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, CONFIG_FILE)
    except Exception:
        temp_file.unlink(missing_ok=True)
        raise
    log.debug("saved config to %s", CONFIG_FILE)


def _ensure_config_dir_permissions(*, create: bool) -> None:
    """Ensure the config directory exists and is owner-only."""
    if create:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=0o700)

    if not CONFIG_DIR.exists():
        return

    current_mode = stat.S_IMODE(CONFIG_DIR.stat().st_mode)
    if current_mode & 0o077:
        CONFIG_DIR.chmod(0o700)
        log.warning(
            "updated config directory permissions for %s from %o to 700",
            CONFIG_DIR,
            current_mode,
        )


def _ensure_config_file_permissions() -> None:
    """Ensure the config file is not readable/writable by group or others."""
    if not CONFIG_FILE.exists():
        return

    current_mode = stat.S_IMODE(CONFIG_FILE.stat().st_mode)
    if current_mode & 0o077:
        CONFIG_FILE.chmod(0o600)
        log.warning(
            "updated config file permissions for %s from %o to 600",
            CONFIG_FILE,
            current_mode,
        )

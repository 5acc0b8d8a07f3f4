"""Shared pytest fixtures for test isolation helpers."""

from pathlib import Path

import pytest

import shellsignal.config as config_module

SHELLSIGNAL_ENV_VARS = (
    "SHELLSIGNAL_SHELL",
    "SHELLSIGNAL_CHANNEL",
    "SHELLSIGNAL_LOG_FILE",
    "SHELLSIGNAL_CAPTURE_OUTPUT",
)


@pytest.fixture()
def shellsignal_config_paths(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> tuple[Path, Path]:
    """Redirect shellsignal config paths to a temp directory."""
    config_dir = tmp_path / ".shellsignal"
    config_file = config_dir / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_file)
    return config_dir, config_file


@pytest.fixture()
def config_dir(shellsignal_config_paths: tuple[Path, Path]) -> Path:
    return shellsignal_config_paths[0]


@pytest.fixture()
def config_file(shellsignal_config_paths: tuple[Path, Path]) -> Path:
    return shellsignal_config_paths[1]


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove shellsignal overrides inherited from the environment."""
    for name in SHELLSIGNAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

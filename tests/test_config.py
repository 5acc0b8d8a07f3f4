"""Unit tests for shellsignal.config."""

import builtins
import json
import stat

import pytest

import shellsignal.config as config_module
from shellsignal.config import ShellSignalConfig, load_config, save_config


@pytest.fixture(autouse=True)
def isolated_config(shellsignal_config_paths, clean_env):
    """Apply shared config path isolation to every test in this module."""
    return shellsignal_config_paths


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_no_file_returns_defaults(self, config_file):
        assert not config_file.exists()
        assert load_config() == ShellSignalConfig()

    def test_loads_values_from_file(self, config_dir, config_file):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps({"shell": "zsh", "channel": 666}))

        result = load_config()

        assert result.shell == "zsh"
        assert result.channel == 666

    def test_malformed_json_falls_back_to_defaults(self, config_dir, config_file, caplog):
        config_dir.mkdir(parents=True)
        config_file.write_text("{ invalid json")

        with caplog.at_level("WARNING", logger="shellsignal.config"):
            result = load_config()

        assert result == ShellSignalConfig()
        assert "falling back to defaults" in caplog.text

    def test_invalid_values_fall_back_to_defaults(self, config_dir, config_file, caplog):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps({"channel": -5}))

        with caplog.at_level("WARNING", logger="shellsignal.config"):
            result = load_config()

        assert result == ShellSignalConfig()
        assert "falling back to defaults" in caplog.text

    def test_non_object_json_is_ignored(self, config_dir, config_file):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps(["zsh"]))

        assert load_config() == ShellSignalConfig()

    def test_shell_env_overrides_file(self, config_dir, config_file, monkeypatch):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps({"shell": "zsh"}))
        monkeypatch.setenv("SHELLSIGNAL_SHELL", "fish")

        assert load_config().shell == "fish"

    def test_channel_env_override(self, monkeypatch):
        monkeypatch.setenv("SHELLSIGNAL_CHANNEL", "666")
        assert load_config().channel == 666

    def test_non_numeric_channel_env_is_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("SHELLSIGNAL_CHANNEL", "abc")

        with caplog.at_level("WARNING", logger="shellsignal.config"):
            result = load_config()

        assert result.channel == ShellSignalConfig().channel
        assert "SHELLSIGNAL_CHANNEL" in caplog.text

    def test_log_file_env_override(self, monkeypatch):
        monkeypatch.setenv("SHELLSIGNAL_LOG_FILE", "/tmp/commands.log")
        assert load_config().log_file == "/tmp/commands.log"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("0", False), ("false", False), ("off", False), ("1", True), ("yes", True)],
    )
    def test_capture_output_env_override(self, config_dir, config_file, monkeypatch, raw, expected):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps({"capture_output": not expected}))
        monkeypatch.setenv("SHELLSIGNAL_CAPTURE_OUTPUT", raw)

        assert load_config().capture_output is expected

    def test_unrecognized_capture_value_keeps_file_value(self, config_dir, config_file, monkeypatch):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps({"capture_output": False}))
        monkeypatch.setenv("SHELLSIGNAL_CAPTURE_OUTPUT", "maybe")

        assert load_config().capture_output is False

    def test_load_corrects_permissive_config_dir_permissions(self, config_dir, config_file):
        config_dir.mkdir(parents=True, mode=0o755)
        config_dir.chmod(0o755)
        config_file.write_text(json.dumps({"shell": "bash"}))

        load_config()

        assert stat.S_IMODE(config_dir.stat().st_mode) == 0o700

    def test_load_corrects_permissive_config_file_permissions(self, config_dir, config_file):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps({"shell": "bash"}))
        config_file.chmod(0o644)

        load_config()

        assert stat.S_IMODE(config_file.stat().st_mode) == 0o600

    def test_load_raises_permission_error_when_config_file_not_readable(
        self, config_dir, config_file, monkeypatch
    ):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps({"shell": "bash"}))

        def fail_open(*args, **kwargs):
            raise PermissionError("permission denied")

        monkeypatch.setattr(builtins, "open", fail_open)

        with pytest.raises(PermissionError):
            load_config()


# ---------------------------------------------------------------------------
# save_config
# ---------------------------------------------------------------------------


class TestSaveConfig:
    def test_creates_config_dir_if_missing(self, config_dir, config_file):
        assert not config_dir.exists()

        save_config(ShellSignalConfig(shell="zsh"))

        assert config_dir.is_dir()
        assert stat.S_IMODE(config_dir.stat().st_mode) == 0o700

    def test_writes_json_to_config_file(self, config_file):
        payload = ShellSignalConfig(shell="fish", channel=666, log_file="/tmp/c.log")

        save_config(payload)

        written = json.loads(config_file.read_text())
        assert written == payload.model_dump(exclude_none=True)

    def test_sets_file_permissions_to_0o600(self, config_file):
        save_config(ShellSignalConfig())

        assert stat.S_IMODE(config_file.stat().st_mode) == 0o600

    def test_overwrites_existing_config(self, config_dir, config_file):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps({"shell": "bash"}))

        save_config(ShellSignalConfig(shell="zsh"))

        assert json.loads(config_file.read_text())["shell"] == "zsh"

    def test_round_trips_through_load(self, config_file):
        save_config(ShellSignalConfig(shell="zsh", capture_output=False))

        assert load_config() == ShellSignalConfig(shell="zsh", capture_output=False)

    def test_raises_permission_error_when_config_dir_is_not_writable(self, monkeypatch):
        def fail_mkdir(*args, **kwargs):
            raise PermissionError("permission denied")

        monkeypatch.setattr(config_module.Path, "mkdir", fail_mkdir)

        with pytest.raises(PermissionError):
            save_config(ShellSignalConfig())


class TestLoadConfigWithoutEnv:
    def test_env_overrides_can_be_skipped(self, config_dir, config_file, monkeypatch):
        config_dir.mkdir(parents=True)
        config_file.write_text(json.dumps({"shell": "zsh"}))
        monkeypatch.setenv("SHELLSIGNAL_SHELL", "fish")
        monkeypatch.setenv("SHELLSIGNAL_CHANNEL", "666")

        result = load_config(env_overrides=False)

        assert result.shell == "zsh"
        assert result.channel == ShellSignalConfig().channel

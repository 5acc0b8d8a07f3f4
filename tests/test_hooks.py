"""Unit tests for shellsignal.shell.hooks."""

import os
from pathlib import Path

import pytest

from shellsignal.shell.hooks import (
    DIALECTS,
    get_dialect,
    render_script,
    write_bash_rcfile,
    write_fish_init,
    write_powershell_profile,
    write_xonsh_rcfile,
    write_zsh_rcdir,
)


def _read_and_remove(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    finally:
        os.unlink(path)


class TestRegistry:
    def test_all_dialects_registered(self):
        assert set(DIALECTS) == {"bash", "zsh", "fish", "powershell", "xonsh"}

    def test_unknown_dialect(self):
        with pytest.raises(KeyError):
            get_dialect("tcsh")

    @pytest.mark.parametrize("name", ["bash", "zsh", "fish", "powershell", "xonsh"])
    def test_channel_is_embedded(self, name):
        assert "666" in render_script(name, channel=666)
        assert "6973" in render_script(name)

    @pytest.mark.parametrize("name", ["bash", "zsh", "fish", "powershell", "xonsh"])
    def test_hook_names_are_filled_in(self, name):
        script = render_script(name)
        assert "@HOOKS@" not in script
        for hook in get_dialect(name).hook_names:
            assert hook in script


class TestBashScript:
    def test_installs_debug_trap_and_prompt_command(self):
        script = render_script("bash")
        assert "trap '__shellsignal_preexec' DEBUG" in script
        assert 'PROMPT_COMMAND="__shellsignal_precmd' in script
        assert "; __shellsignal_arm\"" in script

    def test_filters_completion_and_own_hooks(self):
        script = render_script("bash")
        assert '[[ -n "${COMP_LINE:-}" ]] && return' in script
        assert "__shellsignal_preexec|__shellsignal_precmd|__shellsignal_arm) return ;;" in script

    def test_ignores_line_editing_widgets(self):
        script = render_script("bash")
        preexec = script[script.index("__shellsignal_preexec() {") :]
        assert preexec.index("READLINE_LINE+x") < preexec.index("__shellsignal_running=1")

    def test_history_entry_used_only_when_id_advances(self):
        script = render_script("bash")
        assert "(( BASH_REMATCH[1] > ${__shellsignal_history_id:-0} ))" in script
        assert '*"$BASH_COMMAND"*' not in script

    def test_history_cursor_seeded_at_first_prompt(self):
        script = render_script("bash")
        precmd = script[script.index("__shellsignal_precmd() {") :]
        assert 'if [[ -z "$__shellsignal_history_id" ]]; then' in precmd

    def test_state_survives_resourcing(self):
        script = render_script("bash")
        assert '__shellsignal_running="${__shellsignal_running:-}"' in script
        assert 'if [[ -z "${__shellsignal_installed:-}" ]]; then' in script

    def test_emits_end_and_pwd_only_when_running(self):
        script = render_script("bash")
        precmd = script[script.index("__shellsignal_precmd() {") :]
        precmd = precmd[: precmd.index("\n}\n")]
        assert 'if [[ -n "$__shellsignal_running" ]]; then' in precmd
        assert precmd.index("END") < precmd.index("PWD")

    def test_marker_format(self):
        assert "builtin printf '\\033]%s;%s;%s\\007'" in render_script("bash")

    def test_user_config_only_when_requested(self):
        assert ".bashrc" not in render_script("bash")
        with_config = render_script("bash", source_user_config=True)
        assert with_config.index('source "$HOME/.bashrc"') < with_config.index("__shellsignal_emit()")


class TestZshScript:
    def test_registration_filters_existing_entries(self):
        script = render_script("zsh")
        assert (
            "precmd_functions=(__shellsignal_precmd ${precmd_functions:#__shellsignal_precmd})"
            in script
        )
        assert (
            "preexec_functions=(${preexec_functions:#__shellsignal_preexec} __shellsignal_preexec)"
            in script
        )

    def test_uses_typed_command_line(self):
        assert '__shellsignal_emit START "$1"' in render_script("zsh")

    def test_user_config_restores_zdotdir(self):
        script = render_script("zsh", source_user_config=True)
        assert 'ZDOTDIR="${SHELLSIGNAL_USER_ZDOTDIR:-$HOME}"' in script


class TestFishScript:
    def test_uses_fish_events(self):
        script = render_script("fish")
        assert "function __shellsignal_preexec --on-event fish_preexec" in script
        assert "function __shellsignal_postexec --on-event fish_postexec" in script
        assert "set -l exit_status $status" in script


class TestPowerShellScript:
    def test_history_cursor_drives_start(self):
        script = render_script("powershell")
        assert "Get-History -Count 1" in script
        assert "$entry.Id -gt $state.LastHistoryId" in script
        assert script.index("'START'") < script.index("'END'") < script.index("'PWD'")

    def test_exit_code_normalization(self):
        script = render_script("powershell")
        assert "if ($succeeded) { 0 } elseif ($rawCode) { [Math]::Abs([int]$rawCode) } else { 1 }" in script

    def test_user_prompt_saved_once(self):
        script = render_script("powershell")
        assert "if ($null -eq $global:__ShellSignalOriginalPrompt)" in script


class TestXonshScript:
    def test_installs_python_adapter(self):
        script = render_script("xonsh")
        assert "from shellsignal.shell.xonsh import install" in script
        assert "channel=__shellsignal_channel" in script


class TestBootstrapFiles:
    def test_bash_rcfile_sources_user_config(self):
        content = _read_and_remove(write_bash_rcfile())
        assert 'source "$HOME/.bashrc"' in content
        assert "trap '__shellsignal_preexec' DEBUG" in content

    def test_bash_rcfile_without_user_config(self):
        content = _read_and_remove(write_bash_rcfile(source_user_config=False))
        assert ".bashrc" not in content

    def test_zsh_rcdir(self):
        rcdir = Path(write_zsh_rcdir(channel=666))
        try:
            zshrc = (rcdir / ".zshrc").read_text(encoding="utf-8")
            zshenv = (rcdir / ".zshenv").read_text(encoding="utf-8")
            mode = rcdir.stat().st_mode & 0o777
        finally:
            for child in rcdir.iterdir():
                child.unlink()
            rcdir.rmdir()
        assert "typeset -g __shellsignal_channel=666" in zshrc
        assert 'source "$ZDOTDIR/.zshrc"' in zshrc
        assert ".zshenv" in zshenv
        assert mode == 0o700

    def test_fish_init(self):
        content = _read_and_remove(write_fish_init())
        assert "set -g __shellsignal_channel 6973" in content

    def test_powershell_profile(self):
        content = _read_and_remove(write_powershell_profile())
        assert content.startswith("# shellsignal integration for powershell")

    def test_xonsh_rcfile(self):
        content = _read_and_remove(write_xonsh_rcfile())
        assert "~/.xonshrc" in content
        assert "__shellsignal_channel=6973" in content


class TestOwnHookFilters:
    def test_zsh_filter_lists_its_functions(self):
        assert "__shellsignal_preexec|__shellsignal_precmd) return ;;" in render_script("zsh")

    def test_fish_filter_lists_its_functions(self):
        script = render_script("fish")
        assert 'contains -- "$argv[1]" __shellsignal_preexec __shellsignal_postexec' in script

    def test_powershell_filter_uses_wildcard(self):
        assert "-notlike '__ShellSignal*'" in render_script("powershell")

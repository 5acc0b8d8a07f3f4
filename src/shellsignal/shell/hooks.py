"""Shell integration scripts and the bootstrap files that load them.

Each dialect installs itself into the shell's own "about to run a command"
and "about to draw the prompt" extension points and implements the
IDLE/RUNNING machine from ``shellsignal.session`` in the shell's language.
Re-sourcing a script never registers a hook twice and never resets the
running flag of the command that did the sourcing.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from shellsignal.protocol import CHANNEL_ID

_BASH_USER_CONFIG = """\
# Load the user's normal configuration first.
if [ -f "$HOME/.bashrc" ]; then
    source "$HOME/.bashrc"
elif [ -f "$HOME/.profile" ]; then
    source "$HOME/.profile"
fi
"""

_BASH_HOOKS = r"""
__shellsignal_running="${__shellsignal_running:-}"
__shellsignal_armed="${__shellsignal_armed:-}"
__shellsignal_history_id="${__shellsignal_history_id:-}"

__shellsignal_emit() {
    builtin printf '\033]%s;%s;%s\007' "$__shellsignal_channel" "$1" "$2"
}

__shellsignal_preexec() {
    # Completion passes, bind -x widgets, PROMPT_COMMAND entries and later
    # pipeline stages all reach the DEBUG trap too.
    [[ -n "${COMP_LINE:-}" ]] && return
    [[ -n "${READLINE_LINE+x}${READLINE_POINT+x}" ]] && return
    [[ -z "$__shellsignal_armed" ]] && return
    [[ -n "$__shellsignal_running" ]] && return
    case "$BASH_COMMAND" in
        @HOOKS@) return ;;
    esac
    __shellsignal_armed=""
    __shellsignal_running=1

    local command="$BASH_COMMAND" entry
    entry="$(HISTTIMEFORMAT='' builtin history 1)"
    if [[ "$entry" =~ ^[[:space:]]*([0-9]+)[*]?[[:space:]]+(.*)$ ]]; then
        # An id that did not advance is an older line; the new one was not recorded.
        if (( BASH_REMATCH[1] > ${__shellsignal_history_id:-0} )); then
            __shellsignal_history_id="${BASH_REMATCH[1]}"
            command="${BASH_REMATCH[2]}"
        fi
    fi
    __shellsignal_emit START "$command"
}

__shellsignal_precmd() {
    local exit_status=$?
    __shellsignal_armed=""
    if [[ -n "$__shellsignal_running" ]]; then
        __shellsignal_running=""
        __shellsignal_emit END "$exit_status"
        __shellsignal_emit PWD "$PWD"
    fi
    if [[ -z "$__shellsignal_history_id" ]]; then
        # History from HISTFILE is only loaded after the rc files ran.
        local entry
        entry="$(HISTTIMEFORMAT='' builtin history 1)"
        __shellsignal_history_id=0
        if [[ "$entry" =~ ^[[:space:]]*([0-9]+) ]]; then
            __shellsignal_history_id="${BASH_REMATCH[1]}"
        fi
    fi
    return $exit_status
}

__shellsignal_arm() {
    local exit_status=$?
    __shellsignal_armed=1
    return $exit_status
}

if [[ -z "${__shellsignal_installed:-}" ]]; then
    __shellsignal_user_prompt_command=""
    for __shellsignal_entry in "${PROMPT_COMMAND[@]}"; do
        __shellsignal_entry="${__shellsignal_entry%"${__shellsignal_entry##*[![:space:];]}"}"
        if [[ -n "$__shellsignal_entry" ]]; then
            __shellsignal_user_prompt_command+="${__shellsignal_user_prompt_command:+; }$__shellsignal_entry"
        fi
    done
    unset __shellsignal_entry
    __shellsignal_installed=1
fi

unset PROMPT_COMMAND
PROMPT_COMMAND="__shellsignal_precmd${__shellsignal_user_prompt_command:+; $__shellsignal_user_prompt_command}; __shellsignal_arm"
trap '__shellsignal_preexec' DEBUG
"""

_ZSH_USER_CONFIG = """\
# Load the user's normal configuration first.
ZDOTDIR="${SHELLSIGNAL_USER_ZDOTDIR:-$HOME}"
[[ -f "$ZDOTDIR/.zshrc" ]] && source "$ZDOTDIR/.zshrc"
"""

_ZSH_HOOKS = r"""
typeset -g __shellsignal_running="${__shellsignal_running:-}"

__shellsignal_emit() {
    builtin printf '\033]%s;%s;%s\007' "$__shellsignal_channel" "$1" "$2"
}

__shellsignal_preexec() {
    [[ -n "$__shellsignal_running" ]] && return
    case "$1" in
        @HOOKS@) return ;;
    esac
    __shellsignal_running=1
    __shellsignal_emit START "$1"
}

__shellsignal_precmd() {
    local exit_status=$?
    if [[ -n "$__shellsignal_running" ]]; then
        __shellsignal_running=""
        __shellsignal_emit END "$exit_status"
        __shellsignal_emit PWD "$PWD"
    fi
    return $exit_status
}

# Drop earlier registrations before adding ours. precmd goes first so it
# sees the command's own exit status.
precmd_functions=(__shellsignal_precmd ${precmd_functions:#__shellsignal_precmd})
preexec_functions=(${preexec_functions:#__shellsignal_preexec} __shellsignal_preexec)
"""

_FISH_HOOKS = r"""
set -q __shellsignal_running; or set -g __shellsignal_running ""

function __shellsignal_emit
    printf '\x1b]%s;%s;%s\x07' $__shellsignal_channel $argv[1] "$argv[2]"
end

# Redefining a function replaces its event handler, so re-sourcing is safe.
function __shellsignal_preexec --on-event fish_preexec
    test -n "$__shellsignal_running"; and return
    contains -- "$argv[1]" @HOOKS@; and return
    set -g __shellsignal_running 1
    __shellsignal_emit START "$argv[1]"
end

function __shellsignal_postexec --on-event fish_postexec
    set -l exit_status $status
    test -n "$__shellsignal_running"; or return
    set -g __shellsignal_running ""
    __shellsignal_emit END $exit_status
    __shellsignal_emit PWD "$PWD"
end
"""

_POWERSHELL_HOOKS = r"""
if ($null -eq $global:__ShellSignalState) {
    $global:__ShellSignalState = @{ Running = $false; LastHistoryId = 0 }
    $lastEntry = Get-History -Count 1
    if ($lastEntry) { $global:__ShellSignalState.LastHistoryId = $lastEntry.Id }
}
if ($null -eq $global:__ShellSignalOriginalPrompt) {
    $global:__ShellSignalOriginalPrompt = $function:prompt
}

function global:__ShellSignal-Emit([string]$Tag, [string]$Payload) {
    $esc = [char]27
    $bel = [char]7
    [Console]::Out.Write("$esc]$($global:__ShellSignalChannel);$Tag;$Payload$bel")
    [Console]::Out.Flush()
}

# No reliable pre-exec hook: a new history entry seen at prompt time means a
# command ran, so START is reported late, right before its END.
function global:prompt {
    $succeeded = $?
    $rawCode = $global:LASTEXITCODE
    $state = $global:__ShellSignalState
    $entry = Get-History -Count 1
    if ($entry -and $entry.Id -gt $state.LastHistoryId) {
        $state.LastHistoryId = $entry.Id
        if (-not $state.Running -and $entry.CommandLine -notlike '@HOOKS@') {
            $state.Running = $true
            __ShellSignal-Emit 'START' $entry.CommandLine
        }
    }
    if ($state.Running) {
        $state.Running = $false
        $code = if ($succeeded) { 0 } elseif ($rawCode) { [Math]::Abs([int]$rawCode) } else { 1 }
        __ShellSignal-Emit 'END' $code
        __ShellSignal-Emit 'PWD' $executionContext.SessionState.Path.CurrentLocation.ProviderPath
    }
    $global:LASTEXITCODE = $rawCode
    if ($global:__ShellSignalOriginalPrompt) {
        & $global:__ShellSignalOriginalPrompt
    } else {
        "PS $($executionContext.SessionState.Path.CurrentLocation)> "
    }
}
"""

_XONSH_USER_CONFIG = """\
# Load the user's normal configuration first.
import os as _shellsignal_os
_shellsignal_rc = _shellsignal_os.path.expanduser("~/.xonshrc")
if _shellsignal_os.path.isfile(_shellsignal_rc):
    source @(_shellsignal_rc)
"""

_XONSH_HOOKS = """
from shellsignal.shell.xonsh import install as _shellsignal_install
_shellsignal_install(__xonsh__, channel=__shellsignal_channel)
"""


class Dialect:
    """One shell's integration script."""

    name: str = ""
    # Commands the script runs itself; they never start a user command.
    hook_names: tuple[str, ...] = ()
    hook_separator = " "
    _user_config: str = ""
    _hooks: str = ""

    def header(self, channel: int) -> str:
        return f"__shellsignal_channel={channel}\n"

    def render(self, channel: int = CHANNEL_ID, source_user_config: bool = False) -> str:
        """Return the integration script for this shell."""
        parts = [f"# shellsignal integration for {self.name}\n"]
        if source_user_config and self._user_config:
            parts.append(self._user_config)
        parts.append(self.header(channel))
        parts.append(self._hooks.replace("@HOOKS@", self.hook_separator.join(self.hook_names)))
        return "".join(parts)


class BashDialect(Dialect):
    name = "bash"
    hook_names = ("__shellsignal_preexec", "__shellsignal_precmd", "__shellsignal_arm")
    hook_separator = "|"
    _user_config = _BASH_USER_CONFIG
    _hooks = _BASH_HOOKS


class ZshDialect(Dialect):
    name = "zsh"
    hook_names = ("__shellsignal_preexec", "__shellsignal_precmd")
    hook_separator = "|"
    _user_config = _ZSH_USER_CONFIG
    _hooks = _ZSH_HOOKS

    def header(self, channel: int) -> str:
        return f"typeset -g __shellsignal_channel={channel}\n"


class FishDialect(Dialect):
    name = "fish"
    hook_names = ("__shellsignal_preexec", "__shellsignal_postexec")
    _hooks = _FISH_HOOKS

    def header(self, channel: int) -> str:
        return f"set -g __shellsignal_channel {channel}\n"


class PowerShellDialect(Dialect):
    name = "powershell"
    # A -like wildcard matched against the history entry.
    hook_names = ("__ShellSignal*",)
    _hooks = _POWERSHELL_HOOKS

    def header(self, channel: int) -> str:
        return f"$global:__ShellSignalChannel = {channel}\n"


class XonshDialect(Dialect):
    name = "xonsh"
    _user_config = _XONSH_USER_CONFIG
    _hooks = _XONSH_HOOKS


DIALECTS: dict[str, Dialect] = {
    dialect.name: dialect
    for dialect in (
        BashDialect(),
        ZshDialect(),
        FishDialect(),
        PowerShellDialect(),
        XonshDialect(),
    )
}


def get_dialect(name: str) -> Dialect:
    """Return the dialect registered under ``name``.

    Raises:
        KeyError: If no dialect with that name exists.
    """
    return DIALECTS[name]


def render_script(name: str, channel: int = CHANNEL_ID, source_user_config: bool = False) -> str:
    return get_dialect(name).render(channel, source_user_config)


def _write_temp(script: str, suffix: str) -> str:
    rc = tempfile.NamedTemporaryFile(
        mode="w", prefix="shellsignal_", suffix=suffix, delete=False, encoding="utf-8"
    )
    with rc:
        rc.write(script)
    return rc.name


def write_bash_rcfile(channel: int = CHANNEL_ID, source_user_config: bool = True) -> str:
    """Write a temporary bashrc for ``bash --rcfile``."""
    return _write_temp(render_script("bash", channel, source_user_config), ".bashrc")


def write_zsh_rcdir(channel: int = CHANNEL_ID, source_user_config: bool = True) -> str:
    """Write a temporary ZDOTDIR whose .zshrc installs the hooks.

    zsh has no ``--rcfile``; the launcher points ``ZDOTDIR`` here and passes
    the user's real one in ``SHELLSIGNAL_USER_ZDOTDIR`` so ``.zshenv`` and
    ``.zshrc`` still load from the usual place.
    """
    rcdir = tempfile.mkdtemp(prefix="shellsignal_zsh_")
    zshenv = Path(rcdir) / ".zshenv"
    zshrc = Path(rcdir) / ".zshrc"
    if source_user_config:
        zshenv.write_text(
            '[[ -f "${SHELLSIGNAL_USER_ZDOTDIR:-$HOME}/.zshenv" ]] && '
            'source "${SHELLSIGNAL_USER_ZDOTDIR:-$HOME}/.zshenv"\n',
            encoding="utf-8",
        )
    else:
        zshenv.write_text("", encoding="utf-8")
    zshrc.write_text(render_script("zsh", channel, source_user_config), encoding="utf-8")
    os.chmod(rcdir, 0o700)
    return rcdir


def write_fish_init(channel: int = CHANNEL_ID) -> str:
    """Write a script for ``fish --init-command``; fish loads its own config first."""
    return _write_temp(render_script("fish", channel), ".fish")


def write_powershell_profile(channel: int = CHANNEL_ID) -> str:
    """Write a script dot-sourced after PowerShell has loaded ``$PROFILE``."""
    return _write_temp(render_script("powershell", channel), ".ps1")


def write_xonsh_rcfile(channel: int = CHANNEL_ID, source_user_config: bool = True) -> str:
    """Write a temporary rc file for ``xonsh --rc``."""
    return _write_temp(render_script("xonsh", channel, source_user_config), ".xsh")

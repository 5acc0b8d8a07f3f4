"""Per-session command lifecycle state machine.

Every hook dialect follows the same two-state machine:

    IDLE    --pre-exec-->   RUNNING   emits CommandStart
    RUNNING --pre-prompt--> IDLE      emits CommandEnd, WorkingDirectoryChanged

A trigger arriving in the wrong state is a no-op. Shells that fire their
pre-exec hook once per pipeline stage, or that run the adapter's own
housekeeping through the same hook, therefore never produce a second START.

The shell-script dialects in ``shellsignal.shell.hooks`` implement this
machine in the shell's own language; ``HookStateMachine`` is the in-process
version used by the xonsh adapter.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from shellsignal.protocol import CommandEnd, CommandStart, Event, WorkingDirectoryChanged

log = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Mutable state owned by a single hook adapter for one shell session."""

    execution_in_progress: bool = False
    last_history_id: int | None = None


def normalize_exit_code(succeeded: bool | None, raw_code: int | None) -> int:
    """Collapse a shell's success flag and numeric status into one exit code.

    Success is always 0. A failure keeps its numeric code when the shell
    reports a non-zero one and falls back to 1 otherwise, which covers shells
    that only expose a boolean.
    """
    if succeeded is None:
        succeeded = not raw_code
    if succeeded:
        return 0
    if raw_code:
        return abs(int(raw_code))
    return 1


def is_own_hook(command: str, hook_names: Iterable[str]) -> bool:
    """Return whether ``command`` is one of the adapter's own hook invocations."""
    text = command.strip()
    return any(text == name or text.startswith((f"{name} ", f"{name}(")) for name in hook_names)


class HookStateMachine:
    """Drive ``SessionState`` from pre-exec and pre-prompt triggers."""

    def __init__(self, hook_names: Iterable[str] = (), state: SessionState | None = None) -> None:
        self.hook_names = tuple(hook_names)
        self.state = state if state is not None else SessionState()

    @property
    def running(self) -> bool:
        return self.state.execution_in_progress

    def before_command(self, command: str) -> list[Event]:
        """Handle a pre-exec trigger for ``command``."""
        if self.state.execution_in_progress:
            return []
        if is_own_hook(command, self.hook_names):
            log.debug("ignoring own hook invocation %r", command)
            return []
        self.state.execution_in_progress = True
        return [CommandStart(command)]

    def before_prompt(self, exit_code: int, cwd: str) -> list[Event]:
        """Handle a pre-prompt trigger after a command finished."""
        if not self.state.execution_in_progress:
            return []
        self.state.execution_in_progress = False
        return [CommandEnd(exit_code), WorkingDirectoryChanged(cwd)]

    def seed_history(self, entry_id: int | None) -> None:
        """Start the history cursor at the newest entry present at installation."""
        self.state.last_history_id = entry_id or 0

    def observe_history(self, entry_id: int | None, command: str) -> list[Event]:
        """Detect a newly recorded history entry after the fact.

        Used by dialects without a usable pre-exec hook: on each prompt the
        latest history id is compared with the cursor and, when it advanced,
        a late CommandStart is produced for that entry. Empty input records
        no history entry and therefore produces nothing.
        """
        if entry_id is None:
            return []
        cursor = self.state.last_history_id or 0
        if entry_id <= cursor:
            return []
        self.state.last_history_id = entry_id
        return self.before_command(command)

"""In-process hook adapter for xonsh.

xonsh exposes its extension points as Python events, so the adapter drives
``HookStateMachine`` directly instead of rendering a script:

    on_precommand   -> before_command
    on_postcommand  -> remember the exit status
    on_pre_prompt   -> before_prompt

Loaded from the rc file written by ``write_xonsh_rcfile``, or by hand with::

    from shellsignal.shell.xonsh import install
    install(__xonsh__)
"""

from __future__ import annotations

import os
import sys
from typing import Any, BinaryIO

from shellsignal.protocol import CHANNEL_ID, Event, emit
from shellsignal.session import HookStateMachine, SessionState, normalize_exit_code

HOOK_NAMES = ("_shellsignal_install",)

_ADAPTER_ATTR = "_shellsignal_adapter"


class XonshAdapter:
    """Bridge xonsh events to the lifecycle state machine."""

    def __init__(
        self,
        events: Any,
        channel: int = CHANNEL_ID,
        stream: BinaryIO | None = None,
        state: SessionState | None = None,
    ) -> None:
        self.events = events
        self.channel = channel
        self.stream = stream
        self.machine = HookStateMachine(HOOK_NAMES, state)
        self._exit_code = 0

    def install(self) -> None:
        self.events.on_precommand(self.on_precommand)
        self.events.on_postcommand(self.on_postcommand)
        self.events.on_pre_prompt(self.on_pre_prompt)

    def uninstall(self) -> None:
        self.events.on_precommand.discard(self.on_precommand)
        self.events.on_postcommand.discard(self.on_postcommand)
        self.events.on_pre_prompt.discard(self.on_pre_prompt)

    def on_precommand(self, cmd: str = "", **_: Any) -> None:
        self._write(self.machine.before_command(cmd.strip()))

    def on_postcommand(self, cmd: str = "", rtn: Any = 0, **_: Any) -> None:
        try:
            raw_code = int(rtn)
        except (TypeError, ValueError):
            raw_code = 1 if rtn else 0
        self._exit_code = normalize_exit_code(None, raw_code)

    def on_pre_prompt(self, **_: Any) -> None:
        self._write(self.machine.before_prompt(self._exit_code, os.getcwd()))
        self._exit_code = 0

    def _write(self, events: list[Event]) -> None:
        # xonsh may swap sys.stdout while capturing; markers go to the terminal.
        stream = self.stream if self.stream is not None else sys.__stdout__.buffer
        for event in events:
            emit(event, stream, self.channel)


def install(xsh: Any, channel: int = CHANNEL_ID, stream: BinaryIO | None = None) -> XonshAdapter:
    """Install the adapter into a xonsh session, replacing an earlier one.

    The previous adapter's state is carried over, so re-sourcing the rc file
    from a running command still produces exactly one END for it.
    """
    previous: XonshAdapter | None = getattr(xsh, _ADAPTER_ATTR, None)
    state = None
    if previous is not None:
        previous.uninstall()
        state = previous.machine.state
    adapter = XonshAdapter(xsh.builtins.events, channel=channel, stream=stream, state=state)
    adapter.install()
    setattr(xsh, _ADAPTER_ATTR, adapter)
    return adapter

"""Pair decoded lifecycle events into command records."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from shellsignal.protocol import CommandEnd, CommandStart, Event, WorkingDirectoryChanged

log = logging.getLogger(__name__)

# CSI and OSC sequences are dropped from captured output.
ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[a-zA-Z]|\x1b\][^\x07]*\x07")


def clean_output(data: bytes) -> str:
    """Decode captured bytes and strip terminal control sequences."""
    text = data.decode("utf-8", errors="replace")
    return ANSI_RE.sub("", text).replace("\r\n", "\n")


@dataclass
class CommandRecord:
    """One command observed between its START and END markers."""

    command: str
    started_at: datetime = field(default_factory=datetime.now)
    exit_code: int | None = None
    cwd: str | None = None
    output: str = ""
    duration: float | None = None

    @property
    def finished(self) -> bool:
        return self.exit_code is not None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "started_at": self.started_at.isoformat(),
            "exit_code": self.exit_code,
            "cwd": self.cwd,
            "output": self.output,
            "duration": self.duration,
        }


class CommandTracker:
    """Reconstruct commands from a decoded marker stream.

    The shell side guarantees START, END, PWD in strict alternation, but the
    host may attach mid-stream. An END with no open command or a second START
    while one is open is counted in ``orphan_events`` and otherwise ignored.
    A finished record is returned once the PWD that follows its END arrives,
    so ``cwd`` reflects the directory after the command ran.
    """

    def __init__(self, capture_output: bool = True, max_output: int = 65536) -> None:
        self.capture_output = capture_output
        self.max_output = max_output
        self.cwd: str | None = None
        self.orphan_events = 0
        self._current: CommandRecord | None = None
        self._finishing: CommandRecord | None = None
        self._output = b""
        self._started = 0.0

    @property
    def current(self) -> CommandRecord | None:
        return self._current

    def process(self, items: Iterable[bytes | Event]) -> list[CommandRecord]:
        """Consume output chunks and events in stream order."""
        finished: list[CommandRecord] = []
        for item in items:
            if isinstance(item, bytes):
                self.capture(item)
                continue
            record = self.handle(item)
            if record is not None:
                finished.append(record)
        return finished

    def capture(self, data: bytes) -> None:
        if self._current is None or not self.capture_output:
            return
        self._output = (self._output + data)[-self.max_output :]

    def handle(self, event: Event) -> CommandRecord | None:
        """Apply one event; return a record when one completes."""
        if isinstance(event, CommandStart):
            if self._current is not None:
                self._orphan(event)
                return None
            done = self._take_finishing()
            self._current = CommandRecord(command=event.command.strip())
            self._output = b""
            self._started = time.monotonic()
            return done

        if isinstance(event, CommandEnd):
            record = self._current
            if record is None:
                self._orphan(event)
                return None
            record.exit_code = event.exit_code
            record.duration = time.monotonic() - self._started
            record.output = clean_output(self._output)
            record.cwd = self.cwd
            self._current = None
            self._output = b""
            done = self._take_finishing()
            self._finishing = record
            return done

        if isinstance(event, WorkingDirectoryChanged):
            self.cwd = event.path
            record = self._take_finishing()
            if record is not None:
                record.cwd = event.path
            return record

        return None

    def close(self) -> CommandRecord | None:
        """Return a finished record still waiting for its PWD, if any."""
        if self._current is not None:
            log.debug("stream ended while %r was still running", self._current.command)
        return self._take_finishing()

    def _take_finishing(self) -> CommandRecord | None:
        record, self._finishing = self._finishing, None
        return record

    def _orphan(self, event: Event) -> None:
        self.orphan_events += 1
        log.debug("ignoring out-of-order %s", event)

"""Append observed commands to a plain-text log file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

from shellsignal.tracker import CommandRecord

log = logging.getLogger(__name__)


def format_record(record: CommandRecord) -> str:
    """Render one record in the command log format."""
    duration = f"{record.duration:.3f}s" if record.duration is not None else "unknown"
    exit_code = record.exit_code if record.exit_code is not None else "unknown"
    lines = [
        "=== Command Started ===",
        f"Command: {record.command}",
        f"Time: {record.started_at.isoformat(timespec='seconds')}",
        "--- Output ---",
        record.output.rstrip("\n"),
        "--- End Output ---",
        f"Exit Code: {exit_code}",
        f"Duration: {duration}",
    ]
    if record.cwd:
        lines.append(f"[PWD] {record.cwd}")
    lines.append("=== Command Ended ===")
    return "\n".join(lines) + "\n\n"


class CommandLog:
    """Command log opened in append mode for the lifetime of a session."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self._file: TextIO | None = None

    def open(self) -> CommandLog:
        self._file = self._open_file()
        return self

    def write(self, record: CommandRecord) -> None:
        file = self._file
        if file is None:
            file = self._file = self._open_file()
        file.write(format_record(record))
        file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def _open_file(self) -> TextIO:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        log.debug("recording commands to %s", self.path)
        return open(self.path, "a", encoding="utf-8")

    def __enter__(self) -> CommandLog:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

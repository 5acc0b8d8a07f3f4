"""Wire format for command lifecycle markers.

Every event is written to the shell's stdout as a single OSC sequence:

    \\033]<channel>;<TAG>[;<payload>]\\007

Terminals ignore unknown OSC sequences, so the user never sees these. The
host strips them from the PTY stream before rendering (see
``shellsignal.decoder``).
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import BinaryIO, Union

CHANNEL_ID = 6973

ESC = b"\033"
BEL = b"\007"
OSC_INTRODUCER = ESC + b"]"

TAG_START = "START"
TAG_END = "END"
TAG_PWD = "PWD"
TAGS = (TAG_START, TAG_END, TAG_PWD)


@dataclass(frozen=True)
class CommandStart:
    """A command is about to run."""

    command: str = ""

    tag = TAG_START

    @property
    def payload(self) -> str | None:
        return self.command


@dataclass(frozen=True)
class CommandEnd:
    """The running command finished with ``exit_code``."""

    exit_code: int

    tag = TAG_END

    @property
    def payload(self) -> str | None:
        return str(self.exit_code)


@dataclass(frozen=True)
class WorkingDirectoryChanged:
    """Working directory as of the next prompt."""

    path: str

    tag = TAG_PWD

    @property
    def payload(self) -> str | None:
        return self.path


Event = Union[CommandStart, CommandEnd, WorkingDirectoryChanged]


def payload_is_safe(text: str) -> bool:
    """Return whether ``text`` can be carried without breaking marker framing."""
    return "\007" not in text and "\033" not in text


def encode(event: Event, channel: int = CHANNEL_ID) -> bytes:
    """Serialize one event into its OSC marker.

    The payload is written raw. A payload containing BEL terminates the
    marker early; callers that cannot rule this out should check
    ``payload_is_safe`` first.
    """
    marker = f"{channel};{event.tag}"
    payload = event.payload
    if payload is not None:
        marker += f";{payload}"
    return OSC_INTRODUCER + marker.encode("utf-8", errors="surrogateescape") + BEL


def emit(event: Event, stream: BinaryIO | None = None, channel: int = CHANNEL_ID) -> None:
    """Write the marker for ``event`` and flush immediately.

    The host must see START before the command's own output and END/PWD
    before the next prompt, so nothing is left buffered.
    """
    if stream is None:
        stream = sys.stdout.buffer
    stream.write(encode(event, channel))
    stream.flush()


def decode_marker(tag: str, payload: str | None) -> Event | None:
    """Rebuild an event from a parsed tag and payload.

    Returns ``None`` for unknown tags and malformed END payloads.
    """
    if tag == TAG_START:
        return CommandStart(payload or "")
    if tag == TAG_END:
        if payload is None:
            return None
        try:
            exit_code = int(payload.strip())
        except ValueError:
            return None
        return CommandEnd(exit_code)
    if tag == TAG_PWD:
        return WorkingDirectoryChanged(payload or "")
    return None

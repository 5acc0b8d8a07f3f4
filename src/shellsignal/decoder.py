"""Incremental decoder for lifecycle markers embedded in a PTY stream."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from shellsignal.protocol import BEL, CHANNEL_ID, OSC_INTRODUCER, Event, decode_marker

log = logging.getLogger(__name__)

# Longest marker body held back while waiting for its BEL terminator.
MAX_MARKER_LENGTH = 16384


@dataclass
class DecodeResult:
    """Output bytes with markers removed, plus the events they carried."""

    # Output chunks and events in stream order.
    items: list[bytes | Event] = field(default_factory=list)

    @property
    def output(self) -> bytes:
        return b"".join(item for item in self.items if isinstance(item, bytes))

    @property
    def events(self) -> list[Event]:
        return [item for item in self.items if not isinstance(item, bytes)]

    def _add_output(self, data: bytes) -> None:
        if not data:
            return
        if self.items and isinstance(self.items[-1], bytes):
            self.items[-1] += data
        else:
            self.items.append(data)


class MarkerDecoder:
    """Strip markers from a byte stream and turn them into events.

    PTY reads split the stream at arbitrary points, so a marker may arrive in
    pieces. Bytes that could still be the start of a marker are held back
    until the next ``feed`` call; everything that does not match the full
    marker pattern is returned as ordinary output.
    """

    def __init__(self, channel: int = CHANNEL_ID) -> None:
        self.channel = channel
        self._prefix = OSC_INTRODUCER + f"{channel};".encode()
        self._pending = b""

    @property
    def pending(self) -> bytes:
        return self._pending

    def feed(self, data: bytes) -> DecodeResult:
        buf = self._pending + data
        self._pending = b""
        result = DecodeResult()
        prefix = self._prefix
        pos = 0

        while pos < len(buf):
            start = buf.find(prefix, pos)
            if start == -1:
                keep = self._partial_prefix_length(buf, pos)
                result._add_output(buf[pos : len(buf) - keep])
                if keep:
                    self._pending = buf[len(buf) - keep :]
                break

            result._add_output(buf[pos:start])
            body_start = start + len(prefix)
            end = buf.find(BEL, body_start)
            if end == -1:
                if len(buf) - body_start > MAX_MARKER_LENGTH:
                    log.debug("unterminated marker exceeded %d bytes", MAX_MARKER_LENGTH)
                    result._add_output(buf[start : start + 1])
                    pos = start + 1
                    continue
                self._pending = buf[start:]
                break

            event = self._parse_body(buf[body_start:end])
            if event is None:
                result._add_output(buf[start : end + 1])
            else:
                result.items.append(event)
            pos = end + 1

        return result

    def flush(self) -> bytes:
        """Release any held-back bytes at end of stream."""
        pending, self._pending = self._pending, b""
        return pending

    def _partial_prefix_length(self, buf: bytes, pos: int) -> int:
        """Length of the longest proper prefix of the marker introducer ending ``buf``."""
        limit = min(len(self._prefix) - 1, len(buf) - pos)
        for size in range(limit, 0, -1):
            if buf.endswith(self._prefix[:size]):
                return size
        return 0

    @staticmethod
    def _parse_body(body: bytes) -> Event | None:
        tag_raw, sep, payload_raw = body.partition(b";")
        tag = tag_raw.decode("ascii", errors="replace")
        payload = payload_raw.decode("utf-8", errors="replace") if sep else None
        event = decode_marker(tag, payload)
        if event is None:
            log.debug("passing through unrecognized marker tag=%r payload=%r", tag, payload)
        return event


def strip_markers(data: bytes, channel: int = CHANNEL_ID) -> tuple[bytes, list[Event]]:
    """Decode a complete buffer in one go."""
    decoder = MarkerDecoder(channel)
    result = decoder.feed(data)
    return result.output + decoder.flush(), result.events

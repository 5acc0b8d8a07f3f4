"""`shellsignal emit` command implementation."""

import argparse
import os
import sys

from shellsignal.cli.shared import add_common_arguments, configure_logging
from shellsignal.config import load_config
from shellsignal.protocol import (
    CommandEnd,
    CommandStart,
    Event,
    WorkingDirectoryChanged,
    emit,
    payload_is_safe,
)


def build_parser() -> argparse.ArgumentParser:
    """Build parser for the emit command."""
    parser = argparse.ArgumentParser(
        prog="shellsignal emit",
        description="Write a single lifecycle marker to stdout",
    )
    add_common_arguments(parser)
    parser.add_argument("kind", choices=["start", "end", "pwd"], help="Event type")
    parser.add_argument(
        "payload",
        nargs="?",
        help="Command text, exit code or directory (pwd defaults to the current directory)",
    )
    parser.add_argument("--channel", type=int, help="OSC channel id for the marker")
    return parser


def _build_event(kind: str, payload: str | None) -> Event:
    if kind == "start":
        return CommandStart(payload or "")
    if kind == "end":
        return CommandEnd(int(payload) if payload is not None else 0)
    return WorkingDirectoryChanged(payload or os.getcwd())


def run(argv: list[str]) -> int:
    """Execute the emit command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    try:
        event = _build_event(args.kind, args.payload)
    except ValueError:
        print(f"Error: exit code must be an integer, got {args.payload!r}", file=sys.stderr)
        return 2
    if not payload_is_safe(event.payload or ""):
        print("Error: payload must not contain BEL or ESC characters", file=sys.stderr)
        return 2

    channel = args.channel if args.channel is not None else load_config().channel
    emit(event, sys.stdout.buffer, channel)
    return 0

"""`shellsignal decode` command implementation."""

import argparse
import json
import sys
from typing import BinaryIO, TextIO

from shellsignal.cli.shared import add_common_arguments, configure_logging
from shellsignal.config import load_config
from shellsignal.decoder import MarkerDecoder
from shellsignal.protocol import Event
from shellsignal.tracker import CommandTracker

CHUNK_SIZE = 4096


def event_to_dict(event: Event) -> dict:
    return {"type": event.tag, "payload": event.payload}


def build_parser() -> argparse.ArgumentParser:
    """Build parser for the decode command."""
    parser = argparse.ArgumentParser(
        prog="shellsignal decode",
        description=(
            "Strip lifecycle markers from a captured terminal stream. Clean output "
            "goes to stdout, one JSON line per event (or command) to stderr."
        ),
    )
    add_common_arguments(parser)
    parser.add_argument("file", nargs="?", help="Captured stream (default: stdin)")
    parser.add_argument("--channel", type=int, help="OSC channel id for the markers")
    parser.add_argument(
        "--commands",
        action="store_true",
        help="Report completed commands instead of individual events",
    )
    return parser


def decode_stream(
    source: BinaryIO,
    output: BinaryIO,
    report: TextIO,
    channel: int,
    commands: bool = False,
) -> int:
    """Copy ``source`` to ``output`` without markers; return the number of reports."""
    decoder = MarkerDecoder(channel)
    tracker = CommandTracker()
    reported = 0

    def _report(payload: dict) -> None:
        nonlocal reported
        report.write(json.dumps(payload) + "\n")
        reported += 1

    while chunk := source.read(CHUNK_SIZE):
        result = decoder.feed(chunk)
        output.write(result.output)
        if commands:
            for record in tracker.process(result.items):
                _report(record.to_dict())
        else:
            for event in result.events:
                _report(event_to_dict(event))
    output.write(decoder.flush())
    if commands and (record := tracker.close()) is not None:
        _report(record.to_dict())
    output.flush()
    report.flush()
    return reported


def run(argv: list[str]) -> int:
    """Execute the decode command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    channel = args.channel if args.channel is not None else load_config().channel
    try:
        if args.file:
            with open(args.file, "rb") as source:
                decode_stream(source, sys.stdout.buffer, sys.stderr, channel, args.commands)
        else:
            decode_stream(sys.stdin.buffer, sys.stdout.buffer, sys.stderr, channel, args.commands)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0

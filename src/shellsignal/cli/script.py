"""`shellsignal script` command implementation."""

import argparse
import sys

from shellsignal.cli.shared import add_common_arguments, configure_logging
from shellsignal.config import load_config
from shellsignal.shell.hooks import DIALECTS, render_script


def build_parser() -> argparse.ArgumentParser:
    """Build parser for the script command."""
    parser = argparse.ArgumentParser(
        prog="shellsignal script",
        description=(
            "Print the integration script for a shell, e.g. "
            'eval "$(shellsignal script bash)" in ~/.bashrc'
        ),
    )
    add_common_arguments(parser)
    parser.add_argument("shell", choices=sorted(DIALECTS), help="Shell dialect")
    parser.add_argument("--channel", type=int, help="OSC channel id for the markers")
    parser.add_argument(
        "--with-user-config",
        action="store_true",
        help="Prepend sourcing of the user's normal configuration (for use as an rcfile)",
    )
    return parser


def run(argv: list[str]) -> int:
    """Execute the script command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    channel = args.channel if args.channel is not None else load_config().channel
    sys.stdout.write(render_script(args.shell, channel, args.with_user_config))
    return 0

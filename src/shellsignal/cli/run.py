"""`shellsignal run` command implementation."""

import argparse

from shellsignal import config as config_module
from shellsignal.cli.shared import add_common_arguments, configure_logging
from shellsignal.config import load_config


def build_parser() -> argparse.ArgumentParser:
    """Build parser for the run command."""
    parser = argparse.ArgumentParser(
        prog="shellsignal run",
        description="Run an instrumented interactive shell and record its commands",
    )
    add_common_arguments(parser)
    parser.add_argument("--shell", help="Shell to launch (name or path)")
    parser.add_argument("--log", metavar="FILE", help="Append a record of every command to FILE")
    parser.add_argument("--channel", type=int, help="OSC channel id for the markers")
    parser.add_argument(
        "--no-capture",
        action="store_true",
        help="Do not keep command output in the records",
    )
    parser.add_argument(
        "--no-user-config",
        action="store_true",
        help="Skip the user's normal shell configuration",
    )
    parser.add_argument(
        "--debug-log",
        metavar="FILE",
        help="Where debug logging goes while the shell owns the terminal "
        "(default: ~/.shellsignal/debug.log)",
    )
    return parser


def run(argv: list[str]) -> int:
    """Execute the run command."""
    from shellsignal.shell.loop import shell_loop

    parser = build_parser()
    args = parser.parse_args(argv)

    # The terminal is in raw mode while the shell runs; keep log output off it.
    debug_log = args.debug_log
    if args.debug and debug_log is None:
        config_module.CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=0o700)
        debug_log = str(config_module.CONFIG_DIR / "debug.log")
    configure_logging(args.debug, filename=debug_log)

    config = load_config()
    if args.shell:
        config.shell = args.shell
    if args.log:
        config.log_file = args.log
    if args.channel is not None:
        config.channel = args.channel
    if args.no_capture:
        config.capture_output = False
    if args.no_user_config:
        config.source_user_config = False

    return shell_loop(config)

"""`shellsignal configure` command implementation."""

import argparse
import sys
from typing import Any

from pydantic import ValidationError

from shellsignal import config as config_module
from shellsignal.cli.shared import add_common_arguments, configure_logging
from shellsignal.config import ShellSignalConfig, load_config, save_config


def build_parser() -> argparse.ArgumentParser:
    """Build parser for the configure command."""
    parser = argparse.ArgumentParser(
        prog="shellsignal configure",
        description=(
            "Store defaults in ~/.shellsignal/config.json. "
            "Without options, print the stored configuration."
        ),
    )
    add_common_arguments(parser)
    parser.add_argument("--shell", help="Shell to launch by default (name or path)")
    parser.add_argument("--clear-shell", action="store_true", help="Remove the stored shell")
    parser.add_argument("--channel", type=int, help="OSC channel id for the markers")
    parser.add_argument("--log", metavar="FILE", help="Record every command to FILE by default")
    parser.add_argument("--clear-log", action="store_true", help="Remove the stored log file")
    parser.add_argument(
        "--output-buffer-size",
        type=int,
        metavar="BYTES",
        help="Maximum output kept per command",
    )
    capture_group = parser.add_mutually_exclusive_group()
    capture_group.add_argument(
        "--capture", action="store_true", help="Keep command output in the records"
    )
    capture_group.add_argument(
        "--no-capture", action="store_true", help="Do not keep command output in the records"
    )
    user_config_group = parser.add_mutually_exclusive_group()
    user_config_group.add_argument(
        "--user-config",
        action="store_true",
        help="Source the user's shell configuration before the hooks",
    )
    user_config_group.add_argument(
        "--no-user-config",
        action="store_true",
        help="Skip the user's shell configuration",
    )
    return parser


def _collect_updates(args: argparse.Namespace) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if args.shell is not None:
        updates["shell"] = args.shell
    if args.clear_shell:
        updates["shell"] = None
    if args.channel is not None:
        updates["channel"] = args.channel
    if args.log is not None:
        updates["log_file"] = args.log
    if args.clear_log:
        updates["log_file"] = None
    if args.output_buffer_size is not None:
        updates["output_buffer_size"] = args.output_buffer_size
    if args.capture or args.no_capture:
        updates["capture_output"] = args.capture
    if args.user_config or args.no_user_config:
        updates["source_user_config"] = args.user_config
    return updates


def _print_config(config: ShellSignalConfig) -> None:
    print(f"  shell: {config.shell or '(detected)'}")
    print(f"  channel: {config.channel}")
    print(f"  log_file: {config.log_file or 'not set'}")
    print("  capture_output: " + ("true" if config.capture_output else "false"))
    print(f"  output_buffer_size: {config.output_buffer_size}")
    print("  source_user_config: " + ("true" if config.source_user_config else "false"))


def run(argv: list[str]) -> int:
    """Execute the configure command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    if args.clear_shell and args.shell is not None:
        print("Error: --shell and --clear-shell cannot be used together", file=sys.stderr)
        return 2
    if args.clear_log and args.log is not None:
        print("Error: --log and --clear-log cannot be used together", file=sys.stderr)
        return 2

    existing = load_config(env_overrides=False)
    updates = _collect_updates(args)
    if not updates:
        print(f"Configuration in {config_module.CONFIG_FILE}")
        _print_config(existing)
        return 0

    try:
        updated = ShellSignalConfig.model_validate({**existing.model_dump(), **updates})
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        save_config(updated)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Configuration saved to {config_module.CONFIG_FILE}")
    _print_config(updated)
    return 0

"""Command-line interface for shellsignal."""

import sys
from collections.abc import Callable

from shellsignal import __version__
from shellsignal.cli import configure, decode, emit, run, script

COMMANDS: dict[str, Callable[[list[str]], int]] = {
    "run": run.run,
    "script": script.run,
    "decode": decode.run,
    "emit": emit.run,
    "configure": configure.run,
}

USAGE = """\
usage: shellsignal <command> [options]

commands:
  run        run an instrumented interactive shell and record its commands
  script     print the integration script for a shell
  decode     strip lifecycle markers from a captured stream
  emit       write a single lifecycle marker
  configure  store default options in ~/.shellsignal/config.json

Run `shellsignal <command> --help` for command options.
"""


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        return COMMANDS["run"]([])
    command, rest = args[0], args[1:]
    if command in {"-h", "--help"}:
        print(USAGE, end="")
        return 0
    if command in {"-V", "--version"}:
        print(f"shellsignal {__version__}")
        return 0
    handler = COMMANDS.get(command)
    if handler is None:
        print(f"Error: unknown command {command!r}\n", file=sys.stderr)
        print(USAGE, end="", file=sys.stderr)
        return 2
    return handler(rest)


def entrypoint() -> None:
    raise SystemExit(main())

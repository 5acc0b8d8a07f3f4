"""Helpers shared by the CLI subcommands."""

import argparse
import logging

from shellsignal import __version__

LOG_FORMAT = "%(name)s %(levelname)s: %(message)s"


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"shellsignal {__version__}",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")


def configure_logging(debug: bool, filename: str | None = None) -> None:
    """Configure root logging the same way for every subcommand."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        filename=filename,
    )

"""shellsignal - observe command lifecycles inside an interactive shell."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("shellsignal")
except PackageNotFoundError:
    __version__ = "0.0.0"

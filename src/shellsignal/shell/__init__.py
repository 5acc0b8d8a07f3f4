"""Run an interactive shell on a PTY and observe its command lifecycle.

Usage:
    python -m shellsignal.shell

Spawns the user's shell inside a PTY with the integration hooks installed.
All I/O passes through transparently; the lifecycle markers the hooks write
are stripped from the output before it reaches the screen.
"""


def entrypoint() -> None:
    from shellsignal.config import load_config
    from shellsignal.shell.loop import shell_loop

    raise SystemExit(shell_loop(load_config()))

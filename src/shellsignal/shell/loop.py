"""PTY shell loop implementation."""

import fcntl
import logging
import os
import select
import shutil
import signal
import struct
import sys
import termios
import tty
from collections.abc import Callable

from shellsignal.decoder import MarkerDecoder
from shellsignal.models import ShellSignalConfig
from shellsignal.recorder import CommandLog
from shellsignal.shell.constants import PTY_READ_SIZE, STDIN_READ_SIZE
from shellsignal.shell.detection import UnsupportedShellError, _build_shell_launch_config
from shellsignal.tracker import CommandRecord, CommandTracker

log = logging.getLogger(__name__)


class StreamMonitor:
    """Strip markers from shell output and turn them into command records."""

    def __init__(
        self,
        config: ShellSignalConfig,
        on_record: Callable[[CommandRecord], None] | None = None,
    ) -> None:
        self.decoder = MarkerDecoder(config.channel)
        self.tracker = CommandTracker(
            capture_output=config.capture_output, max_output=config.output_buffer_size
        )
        self.on_record = on_record

    def process(self, data: bytes) -> bytes:
        """Consume one PTY read and return the bytes to show the user."""
        result = self.decoder.feed(data)
        for record in self.tracker.process(result.items):
            self._dispatch(record)
        return result.output

    def finish(self) -> bytes:
        """Flush held-back bytes and any record still waiting for its PWD."""
        tail = self.decoder.flush()
        record = self.tracker.close()
        if record is not None:
            self._dispatch(record)
        return tail

    def _dispatch(self, record: CommandRecord) -> None:
        log.debug("command %r exited %s in %s", record.command, record.exit_code, record.cwd)
        if self.on_record is not None:
            self.on_record(record)


def _winsize(fd: int) -> tuple[int, int, int, int]:
    """Return (rows, cols, xpixel, ypixel) for the given tty fd."""
    return struct.unpack("HHHH", fcntl.ioctl(fd, termios.TIOCGWINSZ, b"\x00" * 8))


def _set_winsize(fd: int, rows: int, cols: int, xp: int = 0, yp: int = 0) -> None:
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, xp, yp))


def _cleanup(paths: list[str]) -> None:
    for cleanup_path in paths:
        try:
            if os.path.isdir(cleanup_path):
                shutil.rmtree(cleanup_path)
            else:
                os.unlink(cleanup_path)
        except OSError:
            log.debug("could not remove %s", cleanup_path)


def shell_loop(
    config: ShellSignalConfig,
    on_record: Callable[[CommandRecord], None] | None = None,
) -> int:
    """Run the PTY-based interactive shell loop."""
    if not sys.stdin.isatty():
        print("Error: stdin must be a terminal", file=sys.stderr)
        return 1
    if not hasattr(os, "fork"):
        print("Error: interactive shell mode requires a POSIX environment", file=sys.stderr)
        return 1

    try:
        launch = _build_shell_launch_config(config)
    except UnsupportedShellError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    command_log = CommandLog(config.log_file) if config.log_file else None

    def _record(record: CommandRecord) -> None:
        if command_log is not None:
            command_log.write(record)
        if on_record is not None:
            on_record(record)

    monitor = StreamMonitor(config, on_record=_record)

    master_fd, slave_fd = os.openpty()

    # Match the slave PTY size to the real terminal.
    rows, cols, xp, yp = _winsize(sys.stdin.fileno())
    _set_winsize(slave_fd, rows, cols, xp, yp)

    pid = os.fork()
    if pid == 0:
        # Child process: exec detected shell attached to the slave PTY.
        os.close(master_fd)
        os.setsid()
        fcntl.ioctl(slave_fd, termios.TIOCSCTTY, 0)
        os.dup2(slave_fd, 0)
        os.dup2(slave_fd, 1)
        os.dup2(slave_fd, 2)
        if slave_fd > 2:
            os.close(slave_fd)
        os.execvpe(launch.executable, launch.argv, launch.env)
        os._exit(1)

    # Parent process: shuttle bytes between real terminal and PTY.
    os.close(slave_fd)

    # Forward window-resize signals to the child.
    def _on_winch(_signum, _frame):
        try:
            r, c, xp, yp = _winsize(sys.stdin.fileno())
            _set_winsize(master_fd, r, c, xp, yp)
            os.kill(pid, signal.SIGWINCH)
        except OSError:
            pass

    signal.signal(signal.SIGWINCH, _on_winch)

    # Put the real terminal into raw mode so keystrokes pass through directly.
    old_attrs = termios.tcgetattr(sys.stdin.fileno())
    tty.setraw(sys.stdin.fileno())

    stdin_fd = sys.stdin.fileno()
    stdout_fd = sys.stdout.fileno()

    try:
        while True:
            try:
                rfds, _, _ = select.select([stdin_fd, master_fd], [], [])
            except InterruptedError:
                continue
            except (OSError, ValueError):
                break

            # Stdin -> PTY master (user keystrokes)
            if stdin_fd in rfds:
                try:
                    data = os.read(stdin_fd, STDIN_READ_SIZE)
                except OSError:
                    break
                if not data:
                    break
                os.write(master_fd, data)

            # PTY master -> stdout (shell output)
            if master_fd in rfds:
                try:
                    data = os.read(master_fd, PTY_READ_SIZE)
                except OSError:
                    break
                if not data:
                    break

                # Strip markers so the user never sees them.
                clean = monitor.process(data)
                if clean:
                    os.write(stdout_fd, clean)
    finally:
        tail = monitor.finish()
        if tail:
            os.write(stdout_fd, tail)
        termios.tcsetattr(sys.stdin.fileno(), termios.TCSAFLUSH, old_attrs)
        signal.signal(signal.SIGWINCH, signal.SIG_DFL)
        os.close(master_fd)
        if command_log is not None:
            command_log.close()
        _cleanup(launch.cleanup_paths)

    _, status = os.waitpid(pid, 0)
    return os.waitstatus_to_exitcode(status)

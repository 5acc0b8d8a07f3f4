"""Shared constants for the PTY host."""

# Bytes read per select() wakeup from the PTY master and from the user's tty.
PTY_READ_SIZE = 4096
STDIN_READ_SIZE = 1024

# Set in the shell's environment so nested sessions can tell they are wrapped.
ACTIVE_ENV_VAR = "SHELLSIGNAL_ACTIVE"

"""Configuration model for shellsignal."""

from pydantic import BaseModel, Field

from shellsignal.protocol import CHANNEL_ID

DEFAULT_OUTPUT_BUFFER_SIZE = 65536


class ShellSignalConfig(BaseModel):
    """Runtime configuration for shellsignal."""

    shell: str | None = Field(
        default=None,
        description=(
            "Shell to launch (name or path, e.g. 'zsh' or '/usr/bin/fish'). "
            "None falls back to $SHELL and then to bash."
        ),
    )
    channel: int = Field(
        default=CHANNEL_ID,
        ge=0,
        description="OSC channel id carried by every marker. Both ends must agree.",
    )
    log_file: str | None = Field(
        default=None,
        description="Append a record of every observed command to this file.",
    )
    capture_output: bool = Field(
        default=True,
        description="Keep each command's output (ANSI sequences stripped) in its record.",
    )
    output_buffer_size: int = Field(
        default=DEFAULT_OUTPUT_BUFFER_SIZE,
        gt=0,
        description="Maximum number of output bytes kept per command.",
    )
    source_user_config: bool = Field(
        default=True,
        description=(
            "Source the user's normal shell configuration before installing hooks, "
            "so the instrumented shell behaves like a regular interactive one."
        ),
    )

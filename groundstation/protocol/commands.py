"""Command serializer for the launch pad protocol.

Each command is a single ASCII byte, optionally followed by a terminator.
Pure functions with no side effects.
"""
from __future__ import annotations

from ..models import Command

DEFAULT_TERMINATOR = "\n"


def encode_command(command: Command, terminator: str = DEFAULT_TERMINATOR) -> bytes:
    """Convert a command to wire bytes.

    Args:
        command: Command to serialize
        terminator: Text appended after the command byte ("" for none)

    Returns:
        ASCII bytes ready to write to the link

    Examples:
        >>> encode_command(Command.LAUNCH)
        b'I\\n'
        >>> encode_command(Command.ARM, terminator="")
        b'A'
    """
    if not isinstance(command, Command):
        raise ValueError(f"Unknown command type: {type(command)}")
    return (command.code + terminator).encode("ascii")

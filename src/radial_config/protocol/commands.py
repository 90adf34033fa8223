"""Outgoing command construction."""

from .constants import (
    LINE_TERMINATOR,
    SAVE_MARKER,
    SAVE_PAYLOAD_SIZE,
    SET_PREFIX,
    TEXT_ENCODING,
)


def build_text_command(name: str) -> bytes:
    """Build a bare text command.

    Example:
        >>> build_text_command("heartbeat")
        b'heartbeat\\n'
    """
    return name.encode(TEXT_ENCODING) + LINE_TERMINATOR


def build_set_command(key: str, value: int) -> bytes:
    """Build a ``set_<key>=<value>`` command."""
    return f"{SET_PREFIX}{key}={int(value)}".encode(TEXT_ENCODING) + LINE_TERMINATOR


def build_save_command(payload: bytes) -> bytes:
    """
    Build the binary save command.

    Format: ``save_settings=`` + raw record payload + terminator, with no
    terminator between marker and payload.

    Args:
        payload: Encoded record without header bytes

    Returns:
        Command bytes

    Raises:
        ValueError: If payload length is wrong
    """
    if len(payload) != SAVE_PAYLOAD_SIZE:
        raise ValueError(f"Save payload must be {SAVE_PAYLOAD_SIZE} bytes, got {len(payload)}")
    return SAVE_MARKER + payload + LINE_TERMINATOR

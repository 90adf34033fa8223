"""Classification of framed device lines."""

import logging
from dataclasses import dataclass
from enum import Enum

from radial_config.core.models import ConfigRecord

from .codec import decode_record
from .constants import (
    CARRIAGE_RETURN,
    CMD_HEARTBEAT,
    CONFIG_MARKER,
    DEFAULT_LAYOUT,
    KIND_CONFIG,
    KIND_KEY_VALUE,
    RECORD_SIZE,
    TEXT_ENCODING,
)

logger = logging.getLogger(__name__)


class MessageType(Enum):
    """Structural type of a device line."""

    CONFIG = "config"
    KEY_VALUE = "key_value"
    HEARTBEAT = "heartbeat"
    STATUS = "status"


@dataclass
class Message:
    """A classified device line.

    Attributes:
        type: Structural message type
        kind: Kind string used for response matching
        text: Decoded line text (empty for binary lines)
        key: Parameter key for KEY_VALUE lines
        value: Parsed integer for KEY_VALUE lines (None if not numeric)
        record: Decoded record for CONFIG lines
    """

    type: MessageType
    kind: str
    text: str = ""
    key: str | None = None
    value: int | None = None
    record: ConfigRecord | None = None

    def __repr__(self) -> str:
        return f"Message(type={self.type.name}, kind={self.kind!r})"


def parse_line(line: bytes, layout: int = DEFAULT_LAYOUT) -> Message | None:
    """
    Classify one framed line.

    Priority: binary config line, then ``key=value``, then bare line.
    Bare lines starting with ``heartbeat`` are typed HEARTBEAT so they can
    never answer a pending command.

    Args:
        line: Line bytes without terminator
        layout: Record layout for binary config lines

    Returns:
        Classified Message, or None for blank lines

    Raises:
        ShortBuffer: If a binary config line is truncated
    """
    if line.startswith(CONFIG_MARKER):
        body = line[len(CONFIG_MARKER) :]
        record = decode_record(body, layout)
        trailing = body[RECORD_SIZE:].rstrip(CARRIAGE_RETURN)
        if trailing:
            logger.debug("Ignoring %d bytes after config record", len(trailing))
        return Message(type=MessageType.CONFIG, kind=KIND_CONFIG, record=record)

    text = line.decode(TEXT_ENCODING).replace("\r", "").strip()
    if not text:
        return None

    if "=" in text:
        key, _, raw_value = text.partition("=")
        key = key.strip()
        raw_value = raw_value.strip()
        try:
            value = int(raw_value)
        except ValueError:
            logger.warning("Non-numeric value for %s: %r", key, raw_value)
            value = None
        return Message(type=MessageType.KEY_VALUE, kind=KIND_KEY_VALUE, text=text, key=key, value=value)

    if text.startswith(CMD_HEARTBEAT):
        return Message(type=MessageType.HEARTBEAT, kind=text, text=text)

    return Message(type=MessageType.STATUS, kind=text, text=text)

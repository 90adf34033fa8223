"""Radial Controller serial protocol implementation."""

from radial_config.protocol.codec import decode_record, encode_record
from radial_config.protocol.commands import build_save_command, build_set_command, build_text_command
from radial_config.protocol.constants import LayoutVersion
from radial_config.protocol.correlator import Correlator, PendingRequest
from radial_config.protocol.framer import LineFramer
from radial_config.protocol.messages import Message, MessageType, parse_line

# ProtocolHandler imported lazily to avoid circular import with core.store
# (core.store -> protocol.codec -> protocol.__init__ -> handler -> core.store)


def __getattr__(name: str):
    if name == "ProtocolHandler":
        from radial_config.protocol.handler import ProtocolHandler

        return ProtocolHandler
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Correlator",
    "LayoutVersion",
    "LineFramer",
    "Message",
    "MessageType",
    "PendingRequest",
    "ProtocolHandler",
    "build_save_command",
    "build_set_command",
    "build_text_command",
    "decode_record",
    "encode_record",
    "parse_line",
]

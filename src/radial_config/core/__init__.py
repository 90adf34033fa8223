"""Core application functionality."""

from radial_config.core.config import Settings, setup_logging
from radial_config.core.exceptions import (
    ConnectionLost,
    RadialError,
    ResponseTimeout,
    ShortBuffer,
    TransportUnavailable,
    UnexpectedResponse,
)
from radial_config.core.models import ConfigParameter, ConfigRecord, ConnectionState, StatusEvent, StatusLevel

# ParameterStore lives in core.store; it depends on protocol.codec, which in
# turn imports core.exceptions, so it is not re-exported here.

__all__ = [
    "ConfigParameter",
    "ConfigRecord",
    "ConnectionLost",
    "ConnectionState",
    "RadialError",
    "ResponseTimeout",
    "Settings",
    "ShortBuffer",
    "StatusEvent",
    "StatusLevel",
    "TransportUnavailable",
    "UnexpectedResponse",
    "setup_logging",
]

"""Data models for the configuration engine."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConnectionState(str, Enum):
    """Lifecycle state of a device session."""

    DISCONNECTED = "disconnected"
    HANDSHAKING = "handshaking"
    LIVE = "live"


class StatusLevel(str, Enum):
    """Severity of a status event shown to the user."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class ConfigParameter(BaseModel):
    """A single device setting mirrored on the host."""

    key: str = Field(..., min_length=1, description="Stable parameter identifier")
    value: int = Field(..., description="Current parameter value")
    min: int = Field(..., description="Minimum allowed value")
    max: int = Field(..., description="Maximum allowed value")
    default: int = Field(0, description="Firmware default value")
    label: str = Field("", description="Human-readable name")

    @field_validator("max")
    @classmethod
    def validate_range(cls, v: int, info) -> int:
        """Ensure max >= min."""
        if info.data.get("min") is not None and v < info.data["min"]:
            raise ValueError("max must be >= min")
        return v

    def clamp(self, value: int) -> int:
        """Return *value* forced into [min, max]."""
        return max(self.min, min(self.max, int(value)))

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "key": "led_count",
                "value": 12,
                "min": 1,
                "max": 255,
                "default": 12,
                "label": "LED count",
            }
        }
    )


class ConfigRecord(BaseModel):
    """Decoded binary configuration record."""

    version: int = Field(..., ge=0, le=255, description="Firmware version byte (read-only)")
    revision: int = Field(..., ge=0, le=255, description="Firmware revision byte (read-only)")
    layout: int = Field(..., description="Layout version used to decode the record")
    values: dict[str, int] = Field(default_factory=dict, description="Field values keyed by parameter")


class StatusEvent(BaseModel):
    """Human-readable status message for the presentation layer."""

    level: StatusLevel = Field(StatusLevel.INFO, description="Severity")
    message: str = Field(..., description="Status text")
    requires_ack: bool = Field(False, description="Whether the user must acknowledge it")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the event was raised")

"""Binary configuration record encoding and decoding.

Record layout (32 bytes, little-endian):
[VERSION][REVISION][FIELDS...][RESERVED (zero)...]

Fields live at fixed offsets; the host and device agree on the layout
out of band. The save payload is the same record without the two header
bytes.
"""

import struct
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from radial_config.core.exceptions import ShortBuffer
from radial_config.core.models import ConfigParameter, ConfigRecord

from .constants import DEFAULT_LAYOUT, HEADER_SIZE, RECORD_SIZE, SAVE_PAYLOAD_SIZE, LayoutVersion


@dataclass(frozen=True)
class FieldSpec:
    """One fixed-offset field within the record."""

    key: str
    offset: int
    fmt: str  # struct format, always little-endian


_V1_FIELDS = (
    FieldSpec("led_count", 2, "<B"),
    FieldSpec("color_order", 3, "<B"),
    FieldSpec("brightness", 4, "<B"),
    FieldSpec("effect_mode", 5, "<B"),
    FieldSpec("rotate_interval", 6, "<H"),
    FieldSpec("fade_duration", 8, "<H"),
    FieldSpec("rotate_cw", 10, "<h"),
    FieldSpec("rotate_ccw", 12, "<h"),
    FieldSpec("step_per_teeth", 14, "<B"),
)

LAYOUTS: dict[LayoutVersion, tuple[FieldSpec, ...]] = {
    LayoutVersion.V1: _V1_FIELDS,
    LayoutVersion.V2: _V1_FIELDS + (FieldSpec("phase", 15, "<B"),),
}


def layout_fields(layout: int = DEFAULT_LAYOUT) -> tuple[FieldSpec, ...]:
    """Return the field table for *layout*.

    Raises:
        ValueError: If the layout version is unknown.
    """
    try:
        return LAYOUTS[LayoutVersion(layout)]
    except ValueError:
        raise ValueError(f"Unsupported layout version: {layout}") from None


def layout_keys(layout: int = DEFAULT_LAYOUT) -> list[str]:
    """Parameter keys carried by *layout*, in record order."""
    return [field.key for field in layout_fields(layout)]


def decode_record(data: bytes, layout: int = DEFAULT_LAYOUT) -> ConfigRecord:
    """
    Decode a binary configuration record.

    Only the first RECORD_SIZE bytes are interpreted; reserved bytes are
    ignored.

    Args:
        data: Raw record bytes (at least RECORD_SIZE long)
        layout: Layout version selecting the field table

    Returns:
        Decoded ConfigRecord with raw (unclamped) field values

    Raises:
        ShortBuffer: If fewer than RECORD_SIZE bytes are given

    Example:
        >>> record = decode_record(bytes([1, 0, 12]) + bytes(29))
        >>> record.values["led_count"]
        12
    """
    if len(data) < RECORD_SIZE:
        raise ShortBuffer(RECORD_SIZE, len(data))

    fields = layout_fields(layout)
    values = {}
    for field in fields:
        values[field.key] = struct.unpack_from(field.fmt, data, field.offset)[0]

    return ConfigRecord(version=data[0], revision=data[1], layout=int(layout), values=values)


def encode_record(
    parameters: Mapping[str, int] | Iterable[ConfigParameter],
    layout: int = DEFAULT_LAYOUT,
) -> bytes:
    """
    Encode parameter values into the save payload.

    The payload is the record without its header bytes: every field is
    written at its record offset minus HEADER_SIZE and all other bytes
    are zero.

    Args:
        parameters: Values keyed by parameter, or ConfigParameter objects
        layout: Layout version selecting the field table

    Returns:
        SAVE_PAYLOAD_SIZE bytes

    Raises:
        ValueError: If a field value is missing or does not fit its width
    """
    if isinstance(parameters, Mapping):
        values = dict(parameters)
    else:
        values = {param.key: param.value for param in parameters}

    payload = bytearray(SAVE_PAYLOAD_SIZE)
    for field in layout_fields(layout):
        if field.key not in values:
            raise ValueError(f"Missing value for field: {field.key}")
        try:
            struct.pack_into(field.fmt, payload, field.offset - HEADER_SIZE, int(values[field.key]))
        except struct.error as e:
            raise ValueError(f"Value {values[field.key]} does not fit field {field.key}: {e}") from e

    return bytes(payload)

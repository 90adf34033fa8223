"""Unit tests for the binary config record codec."""

import struct

import pytest
from conftest import make_record

from radial_config.core.exceptions import ShortBuffer
from radial_config.core.store import ParameterStore
from radial_config.protocol.codec import decode_record, encode_record, layout_keys
from radial_config.protocol.constants import HEADER_SIZE, RECORD_SIZE, SAVE_PAYLOAD_SIZE, LayoutVersion


class TestDecodeRecord:
    """Tests for decode_record."""

    def test_decodes_all_fields(self):
        """Every field is read from its fixed offset."""
        record = decode_record(make_record())

        assert record.version == 1
        assert record.revision == 2
        assert record.layout == 2
        assert record.values == {
            "led_count": 24,
            "color_order": 1,
            "brightness": 3,
            "effect_mode": 0,
            "rotate_interval": 1500,
            "fade_duration": 800,
            "rotate_cw": 90,
            "rotate_ccw": -90,
            "step_per_teeth": 2,
            "phase": 1,
        }

    def test_signed_fields(self):
        """Rotation angles are signed 16-bit little-endian."""
        data = bytearray(RECORD_SIZE)
        data[10:12] = struct.pack("<h", -360)
        data[12:14] = b"\xff\xff"

        record = decode_record(bytes(data))

        assert record.values["rotate_cw"] == -360
        assert record.values["rotate_ccw"] == -1

    def test_unsigned_16bit_field(self):
        """Intervals are unsigned 16-bit little-endian."""
        data = bytearray(RECORD_SIZE)
        data[6:8] = b"\x10\x27"  # 10000

        record = decode_record(bytes(data))

        assert record.values["rotate_interval"] == 10000

    def test_layout_v1_has_no_phase(self):
        """Layout v1 stops at step_per_teeth."""
        record = decode_record(make_record(phase=1), LayoutVersion.V1)

        assert "phase" not in record.values
        assert record.values["step_per_teeth"] == 2
        assert record.layout == 1

    def test_short_buffer(self):
        """Fewer than 32 bytes raises ShortBuffer."""
        with pytest.raises(ShortBuffer) as exc_info:
            decode_record(make_record()[:20])

        assert exc_info.value.actual == 20
        assert exc_info.value.expected == RECORD_SIZE

    def test_short_buffer_is_value_error(self):
        """ShortBuffer can be caught as ValueError."""
        with pytest.raises(ValueError, match="too short"):
            decode_record(b"")

    def test_extra_bytes_ignored(self):
        """Bytes beyond the record are not interpreted."""
        record = decode_record(make_record() + b"\xff\xff")

        assert record.values["led_count"] == 24

    def test_unknown_layout(self):
        """Unknown layout versions are rejected."""
        with pytest.raises(ValueError, match="Unsupported layout"):
            decode_record(make_record(), 9)


class TestEncodeRecord:
    """Tests for encode_record."""

    def test_payload_size(self):
        """Save payload omits the two header bytes."""
        payload = encode_record(ParameterStore().values())

        assert len(payload) == SAVE_PAYLOAD_SIZE == RECORD_SIZE - HEADER_SIZE

    def test_roundtrip_field_bytes(self):
        """decode then encode reproduces the record without its header."""
        original = make_record(version=7, revision=9)

        payload = encode_record(decode_record(original).values)

        assert payload == original[HEADER_SIZE:]

    def test_reserved_bytes_zero(self):
        """Reserved bytes are zero-filled even if the source had garbage."""
        original = bytearray(make_record())
        original[20:32] = b"\xaa" * 12

        payload = encode_record(decode_record(bytes(original)).values)

        assert payload[20 - HEADER_SIZE :] == bytes(RECORD_SIZE - 20)

    def test_accepts_parameter_objects(self):
        """A collection of ConfigParameter encodes like a mapping."""
        store = ParameterStore()

        assert encode_record(store.get_all().values()) == encode_record(store.values())

    def test_field_offsets(self):
        """Fields land at their record offset minus the header."""
        values = ParameterStore().values()
        values["rotate_ccw"] = -2

        payload = encode_record(values)

        assert payload[0] == 12  # led_count at record offset 2
        assert payload[10:12] == struct.pack("<h", -2)

    def test_missing_field(self):
        """A missing value is an error, not a silent zero."""
        values = ParameterStore().values()
        del values["brightness"]

        with pytest.raises(ValueError, match="brightness"):
            encode_record(values)

    def test_value_out_of_width(self):
        """Values that do not fit the field width are rejected."""
        values = ParameterStore().values()
        values["led_count"] = 300

        with pytest.raises(ValueError, match="led_count"):
            encode_record(values)

    def test_layout_v1_leaves_phase_byte_zero(self):
        """Layout v1 does not write the phase byte."""
        payload = encode_record({**ParameterStore().values(), "phase": 1}, LayoutVersion.V1)

        assert payload[15 - HEADER_SIZE] == 0


class TestLayoutKeys:
    """Tests for layout_keys."""

    def test_record_order(self):
        assert layout_keys(LayoutVersion.V2) == [
            "led_count",
            "color_order",
            "brightness",
            "effect_mode",
            "rotate_interval",
            "fade_duration",
            "rotate_cw",
            "rotate_ccw",
            "step_per_teeth",
            "phase",
        ]
        assert layout_keys(LayoutVersion.V1)[-1] == "step_per_teeth"

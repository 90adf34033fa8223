"""Unit tests for line classification and command construction."""

import pytest
from conftest import make_record

from radial_config.core.exceptions import ShortBuffer
from radial_config.protocol.commands import build_save_command, build_set_command, build_text_command
from radial_config.protocol.constants import CONFIG_MARKER, SAVE_PAYLOAD_SIZE
from radial_config.protocol.messages import MessageType, parse_line


class TestParseLine:
    """Tests for parse_line."""

    def test_config_line(self):
        message = parse_line(CONFIG_MARKER + make_record(led_count=30) + b"\r")

        assert message.type is MessageType.CONFIG
        assert message.kind == "config"
        assert message.record.values["led_count"] == 30

    def test_truncated_config_line(self):
        with pytest.raises(ShortBuffer):
            parse_line(CONFIG_MARKER + bytes(20))

    def test_config_line_trailing_bytes_ignored(self):
        message = parse_line(CONFIG_MARKER + make_record() + b"junk")

        assert message.record.values["led_count"] == 24

    def test_key_value(self):
        message = parse_line(b"led_count=5\r")

        assert message.type is MessageType.KEY_VALUE
        assert message.kind == "key_value"
        assert message.key == "led_count"
        assert message.value == 5

    def test_key_value_negative(self):
        message = parse_line(b"rotate_ccw=-90")

        assert message.value == -90

    def test_key_value_non_numeric(self):
        """A non-numeric value is classified but carries no value."""
        message = parse_line(b"led_count=abc")

        assert message.type is MessageType.KEY_VALUE
        assert message.key == "led_count"
        assert message.value is None

    def test_status_line(self):
        message = parse_line(b"save_settings_success\r")

        assert message.type is MessageType.STATUS
        assert message.kind == "save_settings_success"
        assert message.text == "save_settings_success"

    def test_heartbeat_line(self):
        """Heartbeat echoes are typed separately from status replies."""
        for line in (b"heartbeat", b"heartbeat_ack\r"):
            message = parse_line(line)
            assert message.type is MessageType.HEARTBEAT

    def test_blank_lines(self):
        assert parse_line(b"") is None
        assert parse_line(b"\r") is None
        assert parse_line(b"   ") is None

    def test_latin1_text(self):
        message = parse_line(b"caf\xe9")

        assert message.text == "caf\xe9"


class TestCommands:
    """Tests for outgoing command builders."""

    def test_text_command(self):
        assert build_text_command("load_settings") == b"load_settings\n"

    def test_set_command(self):
        assert build_set_command("led_count", 24) == b"set_led_count=24\n"
        assert build_set_command("rotate_ccw", -90) == b"set_rotate_ccw=-90\n"

    def test_save_command(self):
        payload = bytes(range(SAVE_PAYLOAD_SIZE))

        command = build_save_command(payload)

        assert command == b"save_settings=" + payload + b"\n"
        assert len(command) == 14 + 30 + 1

    def test_save_command_wrong_size(self):
        with pytest.raises(ValueError, match="30 bytes"):
            build_save_command(bytes(32))

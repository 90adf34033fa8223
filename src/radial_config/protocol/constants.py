"""Protocol constants for the Radial Controller serial link."""

from enum import IntEnum

# ============================================================================
# Framing
# ============================================================================

LINE_TERMINATOR = b"\n"
CARRIAGE_RETURN = b"\r"
TEXT_ENCODING = "latin-1"

CONFIG_MARKER = b"config="
SAVE_MARKER = b"save_settings="

# ============================================================================
# Binary config record
# ============================================================================

RECORD_SIZE = 32
HEADER_SIZE = 2  # version + revision
SAVE_PAYLOAD_SIZE = RECORD_SIZE - HEADER_SIZE


class LayoutVersion(IntEnum):
    """Known record layouts."""

    V1 = 1  # up to step_per_teeth
    V2 = 2  # adds encoder phase


DEFAULT_LAYOUT = LayoutVersion.V2

# ============================================================================
# Commands (host -> device)
# ============================================================================

CMD_CONFIG_MODE_ENABLE = "config_mode_enabled"
CMD_CONFIG_MODE_DISABLE = "config_mode_disabled"
CMD_LOAD_SETTINGS = "load_settings"
CMD_SAVE_SETTINGS = "save_settings"
CMD_RESET_SETTINGS = "reset_settings"
CMD_HEARTBEAT = "heartbeat"
SET_PREFIX = "set_"

# ============================================================================
# Responses (device -> host)
# ============================================================================

RESP_CONFIG_MODE_ENABLED = "config_mode_enabled_success"
RESP_CONFIG_MODE_TIMEDOUT = "config_mode_timedout"
RESP_LOAD_SUCCESS = "load_settings_success"
RESP_SAVE_SUCCESS = "save_settings_success"
RESP_SAVE_FAILED = "save_settings_failed"
RESP_RESET_SUCCESS = "reset_settings_success"

# Synthetic message kinds
KIND_CONFIG = "config"
KIND_KEY_VALUE = "key_value"

# ============================================================================
# Parameters: key -> (min, max, default, label)
# ============================================================================

PARAMETER_DEFS: dict[str, tuple[int, int, int, str]] = {
    "led_count": (1, 255, 12, "LED count"),
    "color_order": (0, 1, 0, "Color order (0=GRB, 1=RGB)"),
    "brightness": (0, 4, 2, "Brightness level"),
    "effect_mode": (0, 255, 0, "Effect mode"),
    "rotate_interval": (100, 10000, 1000, "Rotation effect period (ms)"),
    "fade_duration": (100, 10000, 1000, "Fade effect duration (ms)"),
    "rotate_cw": (-360, 360, 0, "Clockwise rotation angle"),
    "rotate_ccw": (-360, 360, 0, "Counter-clockwise rotation angle"),
    "step_per_teeth": (1, 2, 1, "Triggers per encoder detent"),
    "phase": (0, 1, 0, "Encoder phase (0=A leads, 1=B leads)"),
}

# ============================================================================
# Timing (seconds)
# ============================================================================

HANDSHAKE_TIMEOUT = 1.0
RESPONSE_TIMEOUT = 2.0
HEARTBEAT_INTERVAL = 2.0
LIVENESS_INTERVAL = 5.0
SET_COMMAND_DELAY = 0.01

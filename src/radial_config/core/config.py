"""Application configuration using pydantic-settings."""

import logging
import sys
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables
    prefixed with RADIAL_ (e.g., RADIAL_SERIAL_PORT).
    """

    serial_port: str | None = None  # None = auto-detect by USB vendor id
    serial_baud: int = 115200
    usb_vendor_id: int = 0x1209
    log_level: str = "INFO"
    handshake_timeout: float = 1.0
    response_timeout: float = 2.0
    heartbeat_interval: float = 2.0
    liveness_interval: float = 5.0
    set_command_delay: float = 0.01
    save_mode: Literal["binary", "text"] = "binary"
    layout_version: int = 2

    model_config = SettingsConfigDict(env_prefix="RADIAL_")


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

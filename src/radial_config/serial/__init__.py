"""Serial communication layer."""

from radial_config.serial.connection import SerialTransport, find_device_port, list_serial_ports

__all__ = ["SerialTransport", "find_device_port", "list_serial_ports"]

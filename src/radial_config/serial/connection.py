"""Serial port transport for the Radial Controller CDC interface."""

import asyncio
import logging

import serial.tools.list_ports
import serial_asyncio
from serial import SerialException

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


def list_serial_ports(vendor_id: int | None = None) -> list[str]:
    """List serial ports, optionally only those with a matching USB vendor id."""
    ports = serial.tools.list_ports.comports()
    return [port.device for port in ports if vendor_id is None or port.vid == vendor_id]


def find_device_port(vendor_id: int) -> str | None:
    """Return the first port whose USB vendor id matches, or None."""
    ports = list_serial_ports(vendor_id)
    if len(ports) > 1:
        logger.info("Found %d matching ports, using %s", len(ports), ports[0])
    return ports[0] if ports else None


class SerialTransport:
    """Async byte stream over a serial port.

    Provides the two capabilities the protocol engine needs: ``read()``
    returning the next available chunk (``b""`` at end of stream) and
    ``write()``.
    """

    def __init__(self, port: str, baudrate: int = 115200):
        """
        Initialize serial transport.

        Args:
            port: Serial port path (e.g., '/dev/ttyACM0')
            baudrate: Communication speed (default: 115200)
        """
        self.port = port
        self.baudrate = baudrate

        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        """Check if currently connected."""
        return self._connected and self._writer is not None and not self._writer.is_closing()

    async def connect(self) -> bool:
        """
        Open serial port connection.

        Returns:
            True if connection successful, False otherwise
        """
        async with self._lock:
            if self.connected:
                logger.debug("Already connected to %s", self.port)
                return True

            try:
                logger.info("Connecting to serial port %s at %d baud", self.port, self.baudrate)

                self._reader, self._writer = await serial_asyncio.open_serial_connection(
                    url=self.port,
                    baudrate=self.baudrate,
                )

                self._connected = True
                logger.info("Successfully connected to %s", self.port)
                return True

            except (OSError, SerialException) as e:
                logger.error("Failed to connect to %s: %s", self.port, e)
                self._connected = False
                return False

    async def disconnect(self) -> None:
        """Close serial port connection."""
        async with self._lock:
            if not self._connected and self._writer is None:
                return

            logger.info("Disconnecting from %s", self.port)

            if self._writer:
                try:
                    self._writer.close()
                    await self._writer.wait_closed()
                except Exception as e:
                    logger.error("Error closing writer: %s", e)

            self._reader = None
            self._writer = None
            self._connected = False
            logger.info("Disconnected from %s", self.port)

    async def read(self) -> bytes:
        """
        Read the next chunk from the serial port.

        Returns:
            Available bytes, or b"" at end of stream

        Raises:
            ConnectionError: If not connected or the port fails
        """
        if not self.connected or not self._reader:
            raise ConnectionError("Not connected to serial port")

        try:
            data = await self._reader.read(READ_CHUNK_SIZE)
        except (OSError, SerialException) as e:
            logger.error("Read error: %s", e)
            self._connected = False
            raise ConnectionError(str(e)) from e

        if not data:
            self._connected = False
        return data

    async def write(self, data: bytes) -> None:
        """
        Write to serial port.

        Args:
            data: Bytes to write

        Raises:
            ConnectionError: If not connected or the port fails
        """
        if not self.connected or not self._writer:
            raise ConnectionError("Not connected to serial port")

        try:
            self._writer.write(data)
            await self._writer.drain()

        except (OSError, SerialException) as e:
            logger.error("Write error: %s", e)
            self._connected = False
            raise ConnectionError(str(e)) from e

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()

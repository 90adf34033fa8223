"""Shared test fixtures."""

import asyncio
import struct

import pytest

from radial_config.core.store import ParameterStore
from radial_config.protocol.constants import CONFIG_MARKER, RECORD_SIZE
from radial_config.protocol.handler import ProtocolHandler


def make_record(
    version: int = 1,
    revision: int = 2,
    led_count: int = 24,
    color_order: int = 1,
    brightness: int = 3,
    effect_mode: int = 0,
    rotate_interval: int = 1500,
    fade_duration: int = 800,
    rotate_cw: int = 90,
    rotate_ccw: int = -90,
    step_per_teeth: int = 2,
    phase: int = 1,
) -> bytes:
    """Build a 32-byte layout-v2 config record."""
    record = struct.pack(
        "<BBBBBBHHhhBB",
        version,
        revision,
        led_count,
        color_order,
        brightness,
        effect_mode,
        rotate_interval,
        fade_duration,
        rotate_cw,
        rotate_ccw,
        step_per_teeth,
        phase,
    )
    return record + bytes(RECORD_SIZE - len(record))


def config_line(record: bytes) -> bytes:
    """Wrap a record as it appears on the wire."""
    return CONFIG_MARKER + record + b"\r\n"


class FakeTransport:
    """In-memory byte stream standing in for SerialTransport.

    ``feed()`` queues bytes for ``read()``. ``replies`` maps a written
    command prefix to the bytes the device answers with.
    """

    def __init__(self, replies: dict[bytes, bytes] | None = None, open_ok: bool = True):
        self.replies = dict(replies or {})
        self.writes: list[bytes] = []
        self.open_ok = open_ok
        self.fail_writes = False
        self._connected = False
        self._incoming: asyncio.Queue[bytes | Exception] = asyncio.Queue()
        self.disconnect_calls = 0

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        self._connected = self.open_ok
        return self.open_ok

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._connected = False

    async def read(self) -> bytes:
        if not self._connected and self._incoming.empty():
            raise ConnectionError("Not connected to serial port")
        item = await self._incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise ConnectionError("write failed")
        self.writes.append(data)
        for prefix, reply in self.replies.items():
            if data.startswith(prefix):
                self.feed(reply)
                break

    def feed(self, data: bytes) -> None:
        self._incoming.put_nowait(data)

    def close_stream(self) -> None:
        """Simulate end of stream."""
        self._incoming.put_nowait(b"")

    def fail_read(self, exc: Exception) -> None:
        """Make the next read raise *exc*."""
        self._incoming.put_nowait(exc)

    def vanish(self) -> None:
        """Simulate the port disappearing without an EOF."""
        self._connected = False


@pytest.fixture
def store() -> ParameterStore:
    return ParameterStore()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(replies={b"config_mode_enabled\n": b"config_mode_enabled_success\r\n"})


def make_handler(transport, store, **kwargs) -> ProtocolHandler:
    """Create a ProtocolHandler with short timeouts."""
    defaults = dict(
        handshake_timeout=0.1,
        response_timeout=0.1,
        heartbeat_interval=10.0,
        liveness_interval=10.0,
        set_command_delay=0,
    )
    defaults.update(kwargs)
    return ProtocolHandler(transport, store, **defaults)

"""Protocol handler for the Radial Controller configuration link.

Owns the session lifecycle: handshake, heartbeat and liveness timers,
request/response exchanges and teardown on transport loss. One handler
serves one connection attempt; once DISCONNECTED it cannot be reused.
"""

import asyncio
import logging
from collections.abc import Callable, Collection
from typing import Literal, Protocol

from radial_config.core.exceptions import (
    ConnectionLost,
    RadialError,
    ResponseTimeout,
    ShortBuffer,
    TransportUnavailable,
    UnexpectedResponse,
)
from radial_config.core.models import ConfigParameter, ConnectionState, StatusEvent, StatusLevel
from radial_config.core.store import ParameterStore
from radial_config.protocol.codec import encode_record
from radial_config.protocol.commands import build_save_command, build_set_command, build_text_command
from radial_config.protocol.constants import (
    CMD_CONFIG_MODE_DISABLE,
    CMD_CONFIG_MODE_ENABLE,
    CMD_HEARTBEAT,
    CMD_LOAD_SETTINGS,
    CMD_RESET_SETTINGS,
    CMD_SAVE_SETTINGS,
    HANDSHAKE_TIMEOUT,
    HEARTBEAT_INTERVAL,
    KIND_CONFIG,
    LIVENESS_INTERVAL,
    RESP_CONFIG_MODE_ENABLED,
    RESP_CONFIG_MODE_TIMEDOUT,
    RESP_LOAD_SUCCESS,
    RESP_RESET_SUCCESS,
    RESP_SAVE_FAILED,
    RESP_SAVE_SUCCESS,
    RESPONSE_TIMEOUT,
    SET_COMMAND_DELAY,
)
from radial_config.protocol.correlator import Correlator
from radial_config.protocol.framer import LineFramer
from radial_config.protocol.messages import Message, MessageType, parse_line

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    StatusLevel.INFO: logging.INFO,
    StatusLevel.SUCCESS: logging.INFO,
    StatusLevel.WARNING: logging.WARNING,
    StatusLevel.ERROR: logging.ERROR,
}


class Transport(Protocol):
    """Byte stream capabilities the handler needs from the host platform."""

    @property
    def connected(self) -> bool: ...

    async def connect(self) -> bool: ...

    async def disconnect(self) -> None: ...

    async def read(self) -> bytes: ...

    async def write(self, data: bytes) -> None: ...


class ProtocolHandler:
    """Drives one configuration session with the device.

    A single read-loop task frames and classifies incoming bytes, resolves
    the pending request and then handles ambient messages. Heartbeat and
    liveness checks run as periodic tasks on the same event loop.
    """

    def __init__(
        self,
        transport: Transport,
        store: ParameterStore,
        handshake_timeout: float = HANDSHAKE_TIMEOUT,
        response_timeout: float = RESPONSE_TIMEOUT,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        liveness_interval: float = LIVENESS_INTERVAL,
        set_command_delay: float = SET_COMMAND_DELAY,
        save_mode: Literal["binary", "text"] = "binary",
    ):
        """Initialize protocol handler.

        Args:
            transport: Byte stream to the device.
            store: Parameter mirror to keep in sync.
            handshake_timeout: Seconds to wait for the config-mode reply.
            response_timeout: Seconds to wait for any other command reply.
            heartbeat_interval: Seconds between heartbeat commands.
            liveness_interval: Seconds between transport checks.
            set_command_delay: Pause after each ``set_`` command so the
                device input buffer is not overrun.
            save_mode: ``binary`` sends the record in one command, ``text``
                sends one ``set_`` command per parameter then ``save_settings``.
        """
        self._transport = transport
        self._store = store
        self._handshake_timeout = handshake_timeout
        self._response_timeout = response_timeout
        self._heartbeat_interval = heartbeat_interval
        self._liveness_interval = liveness_interval
        self._set_command_delay = set_command_delay
        self._save_mode = save_mode

        self._framer = LineFramer()
        self._correlator = Correlator()
        self._state = ConnectionState.DISCONNECTED
        self._started = False
        self._closed = False
        self._closed_event = asyncio.Event()

        self._read_task: asyncio.Task | None = None
        self._heartbeat_task: asyncio.Task | None = None
        self._liveness_task: asyncio.Task | None = None

        self._last_status: StatusEvent | None = None
        self._heartbeats_sent = 0
        self.on_status: Callable[[StatusEvent], None] | None = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def connected(self) -> bool:
        """Whether the device is in configuration mode."""
        return self._state is ConnectionState.LIVE

    @property
    def store(self) -> ParameterStore:
        return self._store

    @property
    def last_status(self) -> StatusEvent | None:
        """Most recent status event."""
        return self._last_status

    @property
    def stats(self) -> dict:
        return {
            **self._framer.stats,
            **self._correlator.stats,
            "heartbeats_sent": self._heartbeats_sent,
        }

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        """Open the transport and switch the device into configuration mode.

        Raises:
            TransportUnavailable: If the port cannot be opened.
            ResponseTimeout: If the device does not answer the handshake.
            UnexpectedResponse: If the device rejects configuration mode.
            ConnectionLost: If the transport fails during the handshake.
            RuntimeError: If this handler was already used.
        """
        if self._started:
            raise RuntimeError("ProtocolHandler is single-use; create a new one to reconnect")
        self._started = True

        if not self._transport.connected and not await self._transport.connect():
            self._closed = True
            self._closed_event.set()
            self._emit(StatusLevel.ERROR, "Failed to open serial port")
            raise TransportUnavailable("Serial port could not be opened")

        self._state = ConnectionState.HANDSHAKING
        self._read_task = asyncio.create_task(self._read_loop())
        self._emit(StatusLevel.INFO, "Enabling configuration mode...")

        try:
            response = await self.send_and_receive(
                build_text_command(CMD_CONFIG_MODE_ENABLE),
                allowed_kinds=(RESP_CONFIG_MODE_ENABLED, RESP_CONFIG_MODE_TIMEDOUT),
                timeout=self._handshake_timeout,
            )
        except RadialError as e:
            await self._teardown()
            self._emit(StatusLevel.ERROR, f"Failed to enable configuration mode: {e}")
            raise

        if response.kind != RESP_CONFIG_MODE_ENABLED:
            await self._teardown()
            self._emit(StatusLevel.ERROR, f"Failed to enable configuration mode: unexpected response {response.kind!r}")
            raise UnexpectedResponse(f"Handshake rejected: {response.kind}", response=response.kind)

        self._state = ConnectionState.LIVE
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        self._liveness_task = asyncio.create_task(self._liveness_loop())
        self._emit(StatusLevel.SUCCESS, "Configuration mode enabled")

    async def disconnect(self) -> None:
        """Leave configuration mode (best effort) and close the session."""
        if self._state is ConnectionState.LIVE:
            try:
                await self._transport.write(build_text_command(CMD_CONFIG_MODE_DISABLE))
            except (ConnectionError, OSError) as e:
                logger.warning("Could not send %s: %s", CMD_CONFIG_MODE_DISABLE, e)

        if self._closed:
            return
        await self._teardown()
        self._emit(StatusLevel.SUCCESS, "Disconnected")

    async def wait_closed(self) -> None:
        """Wait until the session has been torn down."""
        await self._closed_event.wait()

    async def _teardown(self) -> None:
        """Stop timers and read loop, close transport and reset protocol state."""
        if self._closed:
            return
        self._closed = True
        self._state = ConnectionState.DISCONNECTED

        current = asyncio.current_task()
        for task in (self._heartbeat_task, self._liveness_task, self._read_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._heartbeat_task = None
        self._liveness_task = None
        self._read_task = None

        self._correlator.reset()
        self._framer.reset()

        try:
            await self._transport.disconnect()
        except Exception as e:
            logger.error("Error closing transport: %s", e)

        self._closed_event.set()
        logger.info("Session closed")

    async def _connection_lost(self, reason: str) -> None:
        """Tear down after the transport or device dropped the session."""
        if self._closed:
            return
        was_live = self._state is ConnectionState.LIVE
        logger.warning("Connection lost: %s", reason)
        await self._teardown()
        if was_live:
            self._emit(
                StatusLevel.ERROR,
                f"Connection lost ({reason}); the device may have been reset, please reconnect",
                requires_ack=True,
            )

    # -- background tasks ----------------------------------------------------

    async def _read_loop(self) -> None:
        """Read transport bytes, classify lines and dispatch them."""
        try:
            while True:
                data = await self._transport.read()
                if not data:
                    reason = "serial stream closed"
                    break

                for line in self._framer.feed(data):
                    self._handle_line(line)

                await self._drain_ambient()
                if self._closed:
                    return

        except asyncio.CancelledError:
            raise
        except (ConnectionError, OSError) as e:
            reason = str(e) or "serial read failed"

        await self._connection_lost(reason)

    def _handle_line(self, line: bytes) -> None:
        """Classify one framed line, update the store and route it."""
        try:
            message = parse_line(line, self._store.layout)
        except ShortBuffer as e:
            logger.warning("Dropping config line: %s", e)
            self._emit(StatusLevel.WARNING, f"Ignored truncated configuration data ({e.actual} bytes)")
            return

        if message is None:
            return

        if message.type is MessageType.CONFIG:
            self._store.apply_record(message.record)
            logger.info("Configuration record received (firmware %d.%d)", message.record.version, message.record.revision)
        elif message.type is MessageType.KEY_VALUE:
            if message.value is None:
                self._emit(StatusLevel.WARNING, f"Unexpected value in {message.text!r}")
            elif message.key in self._store:
                self._store.set_value(message.key, message.value)
            else:
                logger.debug("Ignoring unknown parameter %s", message.key)

        self._correlator.dispatch(message)

    async def _drain_ambient(self) -> None:
        """Handle messages no pending request claimed."""
        while True:
            message = self._correlator.next_ambient()
            if message is None:
                return

            if message.type is MessageType.STATUS and message.kind == RESP_CONFIG_MODE_TIMEDOUT:
                await self._connection_lost("device configuration mode timed out")
                return

            if message.type is MessageType.STATUS:
                logger.info("Device: %s", message.text)

    async def _heartbeat_loop(self) -> None:
        """Periodically keep the device in configuration mode."""
        heartbeat = build_text_command(CMD_HEARTBEAT)
        while self._state is ConnectionState.LIVE:
            await asyncio.sleep(self._heartbeat_interval)
            if self._state is not ConnectionState.LIVE:
                break
            try:
                await self._transport.write(heartbeat)
                self._heartbeats_sent += 1
            except (ConnectionError, OSError) as e:
                logger.warning("Heartbeat failed: %s", e)

    async def _liveness_loop(self) -> None:
        """Periodically check the transport is still open."""
        while self._state is ConnectionState.LIVE:
            await asyncio.sleep(self._liveness_interval)
            if self._state is ConnectionState.LIVE and not self._transport.connected:
                await self._connection_lost("serial port is no longer available")
                return

    # -- request/response ----------------------------------------------------

    async def send_and_receive(
        self,
        payload: bytes,
        allowed_kinds: Collection[str] | None = None,
        timeout: float | None = None,
    ) -> Message:
        """Send a command and wait for its reply.

        The pending request is registered before writing so a fast reply
        cannot be missed.

        Args:
            payload: Encoded command bytes.
            allowed_kinds: Reply kinds to accept, None for any.
            timeout: Seconds to wait (default: response_timeout).

        Returns:
            The reply message.

        Raises:
            ResponseTimeout: If no qualifying reply arrives in time.
            ConnectionLost: If the write fails.
        """
        request = self._correlator.expect(allowed_kinds, self._response_timeout if timeout is None else timeout)
        try:
            await self._transport.write(payload)
        except (ConnectionError, OSError) as e:
            self._correlator.discard(request)
            await self._connection_lost(f"write failed: {e}")
            raise ConnectionLost(f"Write failed: {e}") from e

        return await self._correlator.wait(request)

    def _require_live(self) -> None:
        if self._state is not ConnectionState.LIVE:
            self._emit(StatusLevel.WARNING, "Not connected to the device")
            raise TransportUnavailable("Not connected to the device")

    async def _write(self, payload: bytes) -> None:
        try:
            await self._transport.write(payload)
        except (ConnectionError, OSError) as e:
            await self._connection_lost(f"write failed: {e}")
            raise ConnectionLost(f"Write failed: {e}") from e

    # -- device operations ---------------------------------------------------

    async def load_settings(self) -> dict[str, ConfigParameter]:
        """Ask the device for its current configuration.

        The device answers with a binary config line (or ``key=value``
        lines followed by ``load_settings_success``); the store is updated
        as the lines arrive.

        Returns:
            All parameters after the load.
        """
        self._require_live()
        self._emit(StatusLevel.INFO, "Loading settings...")
        try:
            await self.send_and_receive(
                build_text_command(CMD_LOAD_SETTINGS),
                allowed_kinds=(KIND_CONFIG, RESP_LOAD_SUCCESS),
            )
        except RadialError as e:
            self._emit(StatusLevel.ERROR, f"Failed to load settings: {e}")
            raise

        self._emit(StatusLevel.SUCCESS, "Settings loaded")
        return self._store.get_all()

    async def push_parameters(self) -> None:
        """Send one ``set_`` command per parameter without awaiting replies."""
        self._require_live()
        for key, value in self._store.values().items():
            await self._write(build_set_command(key, value))
            await asyncio.sleep(self._set_command_delay)

    async def save_settings(self) -> None:
        """Write the store to the device and persist it.

        Raises:
            UnexpectedResponse: If the device reports the save failed.
        """
        self._require_live()
        self._emit(StatusLevel.INFO, "Saving settings...")
        try:
            if self._save_mode == "text":
                await self.push_parameters()
                command = build_text_command(CMD_SAVE_SETTINGS)
            else:
                command = build_save_command(encode_record(self._store.values(), self._store.layout))

            response = await self.send_and_receive(command, allowed_kinds=(RESP_SAVE_SUCCESS, RESP_SAVE_FAILED))
            if response.kind == RESP_SAVE_FAILED:
                raise UnexpectedResponse("Device rejected the settings", response=response.kind)

        except RadialError as e:
            self._emit(StatusLevel.ERROR, f"Failed to save settings: {e}")
            raise

        self._emit(StatusLevel.SUCCESS, "Settings saved to device")

    async def reset_settings(self) -> dict[str, ConfigParameter]:
        """Restore firmware defaults on the device and reload them."""
        self._require_live()
        self._emit(StatusLevel.INFO, "Resetting settings...")
        try:
            await self.send_and_receive(build_text_command(CMD_RESET_SETTINGS), allowed_kinds=(RESP_RESET_SUCCESS,))
        except RadialError as e:
            self._emit(StatusLevel.ERROR, f"Failed to reset settings: {e}")
            raise

        params = await self.load_settings()
        self._emit(StatusLevel.SUCCESS, "Settings reset to defaults")
        return params

    def set_parameter(self, key: str, value: int) -> ConfigParameter:
        """Apply a local edit; it reaches the device on the next save.

        Raises:
            ValueError: If the parameter is unknown.
        """
        if key not in self._store:
            raise ValueError(f"Parameter not found: {key}")
        return self._store.set_value(key, value)

    # -- status --------------------------------------------------------------

    def _emit(self, level: StatusLevel, message: str, requires_ack: bool = False) -> None:
        event = StatusEvent(level=level, message=message, requires_ack=requires_ack)
        self._last_status = event
        logger.log(_LOG_LEVELS[level], "%s", message)
        if self.on_status is not None:
            try:
                self.on_status(event)
            except Exception as e:
                logger.error("Status callback failed: %s", e)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

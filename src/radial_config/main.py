"""Command-line entry point."""

import argparse
import asyncio
import logging
import sys

from radial_config import __version__
from radial_config.core.config import Settings, setup_logging
from radial_config.core.exceptions import RadialError, TransportUnavailable
from radial_config.core.models import ConfigParameter, StatusEvent, StatusLevel
from radial_config.core.store import ParameterStore
from radial_config.protocol.handler import ProtocolHandler
from radial_config.serial.connection import SerialTransport, find_device_port, list_serial_ports

logger = logging.getLogger(__name__)


def parse_assignment(text: str) -> tuple[str, int]:
    """Parse a ``key=value`` command-line argument."""
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {text!r}")
    try:
        return key.strip(), int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Value for {key} must be an integer") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="radial-config", description="Configure a Radial Controller over USB serial")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--port", help="Serial port (default: auto-detect by USB vendor id)")
    parser.add_argument("--log-level", help="Log level (default: RADIAL_LOG_LEVEL or INFO)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("ports", help="List candidate serial ports")
    sub.add_parser("show", help="Load and print the device settings")
    set_parser = sub.add_parser("set", help="Change settings and save them to the device")
    set_parser.add_argument("assignments", nargs="+", type=parse_assignment, metavar="KEY=VALUE")
    sub.add_parser("reset", help="Restore firmware defaults")
    sub.add_parser("monitor", help="Stay connected and print status events")
    return parser


def format_parameter(param: ConfigParameter) -> str:
    return f"{param.key:<16} {param.value:>6}  [{param.min}..{param.max}]  {param.label}"


def print_status(event: StatusEvent) -> None:
    marker = "!" if event.requires_ack else " "
    print(f"{event.timestamp:%H:%M:%S} {marker}[{event.level.value}] {event.message}")


def resolve_port(settings: Settings) -> str:
    """Pick the configured port or auto-detect the device."""
    if settings.serial_port:
        return settings.serial_port
    port = find_device_port(settings.usb_vendor_id)
    if port is None:
        raise TransportUnavailable(f"No serial device with USB vendor id 0x{settings.usb_vendor_id:04X} found")
    return port


def create_handler(settings: Settings) -> ProtocolHandler:
    """Build a fresh transport, store and handler for one session."""
    transport = SerialTransport(port=resolve_port(settings), baudrate=settings.serial_baud)
    store = ParameterStore(layout=settings.layout_version)
    return ProtocolHandler(
        transport=transport,
        store=store,
        handshake_timeout=settings.handshake_timeout,
        response_timeout=settings.response_timeout,
        heartbeat_interval=settings.heartbeat_interval,
        liveness_interval=settings.liveness_interval,
        set_command_delay=settings.set_command_delay,
        save_mode=settings.save_mode,
    )


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    handler = create_handler(settings)
    handler.on_status = print_status

    async with handler:
        if args.command == "monitor":
            await handler.load_settings()
            await handler.wait_closed()
            return 1 if handler.last_status and handler.last_status.level is StatusLevel.ERROR else 0

        if args.command == "reset":
            params = await handler.reset_settings()
        else:
            params = await handler.load_settings()

        if args.command == "set":
            for key, value in args.assignments:
                handler.set_parameter(key, value)
            await handler.save_settings()
            params = handler.store.get_all()

        for param in params.values():
            print(format_parameter(param))
        firmware = handler.store.firmware
        if firmware is not None:
            print(f"firmware {firmware[0]}.{firmware[1]}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the application (for CLI entry point)."""
    args = build_parser().parse_args(argv)

    settings = Settings()
    if args.port:
        settings.serial_port = args.port
    setup_logging(args.log_level or settings.log_level)

    if args.command == "ports":
        ports = list_serial_ports(settings.usb_vendor_id) or list_serial_ports()
        for port in ports:
            print(port)
        return 0

    try:
        return asyncio.run(run_command(args, settings))
    except KeyboardInterrupt:
        return 130
    except (RadialError, ValueError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

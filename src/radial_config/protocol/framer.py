"""Line framing for the device byte stream."""

import logging

from .constants import CONFIG_MARKER, LINE_TERMINATOR, RECORD_SIZE

logger = logging.getLogger(__name__)


class LineFramer:
    """Splits a raw byte stream into terminator-delimited lines.

    Chunks may arrive at arbitrary boundaries; incomplete data stays in the
    buffer until a terminator completes it. Lines that start with the
    binary marker carry a fixed-length payload that is copied verbatim, so
    terminator bytes inside the payload do not end the line.

    The payload window is only trusted once it is complete. If it holds a
    terminator followed by nothing but printable text, the device sent a
    truncated payload; the line then ends at that terminator so the
    following lines are not swallowed.
    """

    def __init__(
        self,
        terminator: bytes = LINE_TERMINATOR,
        binary_marker: bytes = CONFIG_MARKER,
        payload_length: int = RECORD_SIZE,
    ) -> None:
        self._terminator = terminator
        self._binary_marker = binary_marker
        self._payload_length = payload_length
        self._buffer = bytearray()
        self._stats = {
            "lines_read": 0,
            "config_lines": 0,
            "bytes_read": 0,
        }

    @property
    def stats(self) -> dict:
        """Get framer statistics."""
        return self._stats.copy()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet emitted as a line."""
        return len(self._buffer)

    def feed(self, data: bytes) -> list[bytes]:
        """
        Append *data* to the buffer and return every completed line.

        Args:
            data: Raw bytes from the transport

        Returns:
            Completed lines in arrival order, terminator excluded
        """
        self._buffer.extend(data)
        self._stats["bytes_read"] += len(data)

        lines = []
        while True:
            line = self._extract_line()
            if line is None:
                break
            self._stats["lines_read"] += 1
            lines.append(line)
        return lines

    def _extract_line(self) -> bytes | None:
        marker = self._binary_marker
        binary = self._buffer.startswith(marker)
        scan_from = 0

        if binary:
            payload_start = len(marker)
            payload_end = payload_start + self._payload_length
            if len(self._buffer) < payload_end:
                return None
            scan_from = payload_end

            # Records end in zero-filled reserved bytes, so a window that is
            # plain text after an early terminator holds a short payload
            # followed by the next lines.
            early = self._buffer.find(self._terminator, payload_start, payload_end)
            if early != -1 and _is_text(self._buffer[early + len(self._terminator) : payload_end]):
                scan_from = payload_start
        elif len(self._buffer) < len(marker) and marker.startswith(bytes(self._buffer)):
            # Could still become a binary line; wait for more bytes
            return None

        end_idx = self._buffer.find(self._terminator, scan_from)
        if end_idx == -1:
            return None

        line = bytes(self._buffer[:end_idx])
        del self._buffer[: end_idx + len(self._terminator)]

        if binary:
            self._stats["config_lines"] += 1
            if end_idx < payload_end:
                logger.debug("Binary line ends %d bytes into its payload", end_idx - payload_start)
            elif end_idx > payload_end:
                logger.debug("Binary line has %d continuation bytes after payload", end_idx - payload_end)
        return line

    def reset(self) -> None:
        """Discard any partially received data."""
        if self._buffer:
            logger.debug("Discarding %d buffered bytes", len(self._buffer))
        self._buffer.clear()


def _is_text(data: bytes) -> bool:
    """Whether *data* consists only of printable ASCII and line breaks."""
    return all(0x20 <= b < 0x7F or b in (0x09, 0x0A, 0x0D) for b in data)

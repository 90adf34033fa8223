"""Error types raised by the configuration engine."""


class RadialError(Exception):
    """Base class for all engine errors."""


class TransportUnavailable(RadialError, ConnectionError):
    """No open serial port or stream to talk to."""


class ResponseTimeout(RadialError, TimeoutError):
    """No qualifying response arrived before the deadline."""


class UnexpectedResponse(RadialError):
    """A response arrived but was a failure reply or could not be decoded."""

    def __init__(self, message: str, response: str | None = None):
        super().__init__(message)
        self.response = response


class ShortBuffer(RadialError, ValueError):
    """Binary payload is shorter than the record it should contain."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Config record too short: {actual} bytes (need {expected})")
        self.expected = expected
        self.actual = actual


class ConnectionLost(RadialError, ConnectionError):
    """Transport disappeared or the device left configuration mode."""

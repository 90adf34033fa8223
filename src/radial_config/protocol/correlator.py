"""Request/response correlation for device messages.

A single pending request slot receives the reply to the command currently
in flight; everything else lands on the ambient channel, which the read
loop drains after each chunk.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Collection

from radial_config.core.exceptions import ResponseTimeout

from .messages import Message, MessageType

logger = logging.getLogger(__name__)


class PendingRequest:
    """The single outstanding expectation for a device reply."""

    def __init__(self, expected_kinds: Collection[str] | None, deadline: float):
        self.expected_kinds = frozenset(expected_kinds) if expected_kinds is not None else None
        self.deadline = deadline
        self.future: asyncio.Future[Message] = asyncio.get_running_loop().create_future()

    def matches(self, message: Message) -> bool:
        """Whether *message* qualifies as the reply."""
        if message.type is MessageType.HEARTBEAT:
            return False
        return self.expected_kinds is None or message.kind in self.expected_kinds

    def __repr__(self) -> str:
        kinds = "any" if self.expected_kinds is None else sorted(self.expected_kinds)
        return f"PendingRequest(expected={kinds})"


class Correlator:
    """Matches incoming messages against the in-flight request."""

    def __init__(self) -> None:
        self._pending: PendingRequest | None = None
        self._ambient: deque[Message] = deque()
        self._stats = {
            "delivered": 0,
            "ambient": 0,
            "timeouts": 0,
        }

    @property
    def pending(self) -> PendingRequest | None:
        return self._pending

    @property
    def stats(self) -> dict:
        return self._stats.copy()

    def expect(self, allowed_kinds: Collection[str] | None = None, timeout: float = 1.0) -> PendingRequest:
        """
        Register the pending request before the command is written.

        Only one request may be outstanding; a new one replaces (and fails)
        any stale request left behind.

        Args:
            allowed_kinds: Kinds accepted as the reply, None for any
            timeout: Seconds until the request expires

        Returns:
            The registered PendingRequest
        """
        if self._pending is not None and not self._pending.future.done():
            logger.warning("Replacing outstanding %r", self._pending)
            self._pending.future.set_exception(ResponseTimeout("Superseded by a newer request"))
        loop = asyncio.get_running_loop()
        self._pending = PendingRequest(allowed_kinds, loop.time() + timeout)
        return self._pending

    async def wait(self, request: PendingRequest) -> Message:
        """
        Wait for *request* to resolve.

        Raises:
            ResponseTimeout: If the deadline passes first
        """
        remaining = request.deadline - asyncio.get_running_loop().time()
        try:
            return await asyncio.wait_for(request.future, timeout=max(remaining, 0))
        except ResponseTimeout:
            raise
        except TimeoutError:
            self._stats["timeouts"] += 1
            raise ResponseTimeout(f"No response matching {request!r}") from None
        finally:
            if self._pending is request:
                self._pending = None
            if not request.future.done():
                request.future.cancel()

    async def await_response(self, timeout: float, allowed_kinds: Collection[str] | None = None) -> Message:
        """Register a request and wait for its reply."""
        return await self.wait(self.expect(allowed_kinds, timeout))

    def dispatch(self, message: Message) -> bool:
        """
        Route a classified message.

        Returns:
            True if it resolved the pending request, False if it went to
            the ambient channel.
        """
        request = self._pending
        if request is not None and not request.future.done() and request.matches(message):
            request.future.set_result(message)
            self._pending = None
            self._stats["delivered"] += 1
            return True

        self._ambient.append(message)
        self._stats["ambient"] += 1
        logger.debug("Ambient message: %r", message)
        return False

    def next_ambient(self) -> Message | None:
        """Pop the oldest ambient message, or None when empty."""
        if self._ambient:
            return self._ambient.popleft()
        return None

    def discard(self, request: PendingRequest) -> None:
        """Withdraw *request* without resolving it (the command was never sent)."""
        if self._pending is request:
            self._pending = None
        if not request.future.done():
            request.future.cancel()

    def fail_pending(self, exc: Exception) -> None:
        """Fail and discard the pending request, if any."""
        request = self._pending
        self._pending = None
        if request is not None and not request.future.done():
            request.future.set_exception(exc)

    def reset(self) -> None:
        """Drop ambient messages and fail the pending request."""
        self.fail_pending(ResponseTimeout("Connection closed"))
        self._ambient.clear()

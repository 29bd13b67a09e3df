"""Line reader over the agent's live log stream.

GET /v1/agent/monitor answers with a body that stays open for as long as
the agent keeps writing. LogStream turns that body into an async iterator
of text lines and owns closing it.

Usage:
    async with LogStream(response) as logs:
        async for line in logs:
            print(line)
"""

from __future__ import annotations

import codecs
import logging
from collections import deque
from collections.abc import AsyncIterator
from enum import Enum
from typing import Protocol, Self, runtime_checkable

from consul_agent.agent.metrics import agent_monitor_lines_total

logger = logging.getLogger(__name__)


@runtime_checkable
class ByteStream(Protocol):
    """Readable byte stream with an async close.

    httpx.Response opened with stream=True satisfies this protocol.
    """

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        """Iterate raw body chunks as they arrive."""
        ...

    async def aclose(self) -> None:
        """Release the underlying connection."""
        ...


class StreamState(str, Enum):
    """Lifecycle of a LogStream."""

    OPEN = "open"  # waiting for bytes
    LINE_READY = "line_ready"  # at least one complete line buffered
    END_OF_DATA = "end_of_data"  # remote closed, draining buffered lines
    RELEASED = "released"  # stream closed, iteration finished


class LogStream:
    """Async iterator of log lines read from an open byte stream.

    The reader takes exclusive ownership of the stream. Lines are yielded
    without their terminator (``\\n`` or ``\\r\\n``); a final line with no
    terminator is still yielded. Iteration ends when the remote side closes
    the body.

    The stream is closed exactly once, on whichever exit comes first:
    exhaustion, an error or cancellation while reading, leaving an
    ``async with`` block, or an explicit ``aclose()``. Further calls to
    ``aclose()`` do nothing. A released reader cannot be restarted.

    Attributes:
        state: Current StreamState.
    """

    def __init__(
        self,
        stream: ByteStream,
        encoding: str = "utf-8",
        label: str = "monitor",
    ) -> None:
        """Take ownership of an open stream.

        Args:
            stream: Open byte stream. Must not be read or closed elsewhere.
            encoding: Text encoding of the log output.
            label: Metric label identifying the stream (e.g. "monitor_json").
        """
        self._stream = stream
        self._chunks: AsyncIterator[bytes] | None = None
        self._reading = False
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._partial = ""
        self._lines: deque[str] = deque()
        self._label = label
        self.state = StreamState.OPEN

    @property
    def released(self) -> bool:
        """Whether the underlying stream has been closed."""
        return self.state is StreamState.RELEASED

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> str:
        if self.state is StreamState.RELEASED:
            raise StopAsyncIteration

        try:
            line = await self._next_line()
        except Exception:
            if self.released:
                # closed by another task while this read was pending
                raise StopAsyncIteration from None
            await self.aclose()
            raise
        except BaseException:
            await self.aclose()
            raise

        if line is None:
            await self.aclose()
            raise StopAsyncIteration

        agent_monitor_lines_total.labels(stream=self._label).inc()
        return line

    async def _next_line(self) -> str | None:
        """Return the next complete line, or None once the stream is drained."""
        while not self._lines:
            if self.state is StreamState.END_OF_DATA:
                return None
            if self._chunks is None:
                self._chunks = self._stream.aiter_bytes()
            try:
                chunk = await self._read_chunk()
            except StopAsyncIteration:
                if self.released:
                    return None
                self._finish()
            else:
                if self.released:
                    return None
                self._feed(chunk)

        line = self._lines.popleft()
        if not self._lines and self.state is StreamState.LINE_READY:
            self.state = StreamState.OPEN
        return line

    async def _read_chunk(self) -> bytes:
        self._reading = True
        try:
            return await anext(self._chunks)
        finally:
            self._reading = False
            # aclose() during this read left the chunk iterator to us
            if self.state is StreamState.RELEASED:
                await self._close_chunks()

    def _feed(self, chunk: bytes) -> None:
        text = self._partial + self._decoder.decode(chunk)
        *complete, self._partial = text.split("\n")
        if complete:
            self._lines.extend(line.removesuffix("\r") for line in complete)
            self.state = StreamState.LINE_READY

    def _finish(self) -> None:
        tail = self._partial + self._decoder.decode(b"", final=True)
        self._partial = ""
        if tail:
            self._lines.append(tail.removesuffix("\r"))
        self.state = StreamState.END_OF_DATA
        logger.debug("Agent closed log stream", extra={"stream": self._label})

    async def aclose(self) -> None:
        """Close the underlying stream. Safe to call more than once.

        May be called from another task while a read is pending; that
        read then ends the iteration instead of yielding.
        """
        if self.state is StreamState.RELEASED:
            return
        self.state = StreamState.RELEASED
        self._lines.clear()
        self._partial = ""

        try:
            if not self._reading:
                await self._close_chunks()
        finally:
            await self._stream.aclose()
            logger.debug("Released log stream", extra={"stream": self._label})

    async def _close_chunks(self) -> None:
        chunks, self._chunks = self._chunks, None
        if chunks is not None and hasattr(chunks, "aclose"):
            await chunks.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

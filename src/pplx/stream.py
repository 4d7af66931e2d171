"""Cumulative stream handling: hand-off channel, reducer, incremental renderer.

The API streams *cumulative* snapshots: every event carries the complete
answer so far, never a delta. For an answer "The sky is blue" the events
read "The", "The sky", "The sky is", "The sky is blue". The reducer therefore
keeps only the latest snapshot, and the renderer prints only the suffix it
has not printed yet.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Generic, TypeVar

from pplx.errors import OutputError, StreamError

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import TextIO

    from pplx.models import CompletionResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Channel(Generic[T]):
    """Zero-capacity hand-off between one producer and one consumer.

    ``put()`` returns only after the consumer has received the item, which is
    the only backpressure between the two sides. ``close()`` ends iteration
    on the consumer side once everything sent has been received.
    """

    def __init__(self) -> None:
        # Unbounded underneath; put() joins, so at most one item is in flight.
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, item: T) -> None:
        """Send *item* and wait until the consumer has taken it."""
        if self._closed:
            raise RuntimeError("send on closed channel")
        self._queue.put_nowait(item)
        await self._queue.join()

    def close(self) -> None:
        """Mark the channel closed. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> Channel[T]:
        return self

    async def __anext__(self) -> T:
        item = await self._queue.get()
        self._queue.task_done()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]


class StreamReducer:
    """Retain the most recent (most complete) observation of a stream."""

    def __init__(self) -> None:
        self.last: CompletionResponse | None = None
        self.observations = 0

    def observe(self, response: CompletionResponse) -> None:
        """Replace the held result; snapshots are never concatenated."""
        self.last = response
        self.observations += 1

    async def consume(
        self,
        channel: Channel[CompletionResponse],
        on_update: Callable[[CompletionResponse], object] | None = None,
    ) -> None:
        """Drain *channel*, observing each item and notifying *on_update*."""
        async for response in channel:
            self.observe(response)
            if on_update is not None:
                on_update(response)
        logger.debug("Stream closed after %d observation(s)", self.observations)

    def result(self) -> CompletionResponse:
        """Return the last observation.

        Raises:
            StreamError: If the stream closed without any observation.
        """
        if self.last is None:
            raise StreamError("no response received from stream")
        return self.last


class IncrementalRenderer:
    """Write only the newly appended suffix of cumulative content."""

    def __init__(self, sink: TextIO) -> None:
        self.sink = sink
        self.emitted = 0

    def render(self, response: CompletionResponse) -> str:
        """Emit ``content[emitted:]`` when the content grew; return what was written."""
        content = response.last_content
        if len(content) <= self.emitted:
            return ""
        suffix = content[self.emitted :]
        try:
            self.sink.write(suffix)
            self.sink.flush()
        except OSError as e:
            raise OutputError(f"error writing streaming content: {e}") from e
        self.emitted = len(content)
        return suffix

    __call__ = render

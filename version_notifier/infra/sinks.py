from __future__ import annotations
import asyncio, uuid
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from version_notifier.core.errors import SinkWriteFailure


@runtime_checkable
class Sink(Protocol):
    """Destination for a subscriber's byte chunks.

    ``write`` raises on failure; ``close`` ends the stream. Sinks are owned
    by whoever created them (normally the connection handler).
    """

    def write(self, chunk: bytes) -> None: ...

    def close(self) -> None: ...


_CLOSED = object()


class QueueSink:
    """Sink backed by a bounded asyncio.Queue and drained by a streaming response.

    A full queue (slow or stalled client) or a closed sink is a write failure.
    Must be used from the event loop thread that drains it.
    """

    def __init__(self, maxsize: int = 16, sink_id: Optional[str] = None) -> None:
        self.id = sink_id or uuid.uuid4().hex[:12]
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, chunk: bytes) -> None:
        if self._closed:
            raise SinkWriteFailure(f"sink {self.id} is closed")
        try:
            self._queue.put_nowait(chunk)
        except asyncio.QueueFull:
            raise SinkWriteFailure(f"sink {self.id} queue full") from None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # drop pending chunks so the close marker always fits
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is _CLOSED:
                return
            yield chunk

    def __repr__(self) -> str:
        return f"QueueSink(id={self.id!r}, closed={self._closed})"

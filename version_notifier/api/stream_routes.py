from __future__ import annotations
import asyncio, logging
from typing import AsyncIterator
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from version_notifier.core.broadcaster import Broadcaster
from version_notifier.core.config import settings
from version_notifier.core.logging import connection_id_var
from version_notifier.core.sse import KEEPALIVE_FRAME, MEDIA_TYPE, SSE_HEADERS, format_event
from version_notifier.dependencies import get_broadcaster
from version_notifier.infra.sinks import QueueSink

router = APIRouter()
logger = logging.getLogger("api.stream")


async def _fanout_stream(notifier: Broadcaster, sink: QueueSink) -> AsyncIterator[bytes]:
    connection_id_var.set(sink.id)
    notifier.subscribe(sink)
    try:
        async for chunk in sink:
            yield chunk
    finally:
        # client disconnected (task cancelled) or sink evicted
        notifier.unsubscribe(sink)
        sink.close()
        logger.info("version stream closed", extra={"sink": repr(sink)})


async def _keepalive_stream(interval: float, retry_ms: int) -> AsyncIterator[bytes]:
    # one timer per connection; cancelled with the response task on disconnect
    yield format_event("connected", event="info", retry=retry_ms)
    while True:
        await asyncio.sleep(interval)
        yield KEEPALIVE_FRAME


@router.get("/api/version/stream")
async def version_stream(
    request: Request, notifier: Broadcaster = Depends(get_broadcaster)
):
    mode = (settings.STREAM_MODE or "fanout").lower()
    if mode == "keepalive":
        gen = _keepalive_stream(settings.KEEPALIVE_INTERVAL_SECONDS, settings.SSE_RETRY_MS)
    else:
        notifier.set_host(request.headers.get("host"))
        sink = QueueSink(maxsize=settings.SINK_QUEUE_SIZE)
        gen = _fanout_stream(notifier, sink)
    return StreamingResponse(gen, media_type=MEDIA_TYPE, headers=SSE_HEADERS)

"""Server-Sent-Events frame encoding.

Frames are written field by field in the order ``id``, ``event``,
``data``, ``retry`` and terminated by a blank line. ``data`` is written
raw: a payload containing a newline produces a malformed frame.
"""
from __future__ import annotations
from typing import Dict, Optional

DEFAULT_RETRY_MS = 500
VERSION_EVENT = "version"

MEDIA_TYPE = "text/event-stream; charset=utf-8"
KEEPALIVE_FRAME = b":\n\n"

# Content-Type is carried by the response media type
SSE_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Connection": "keep-alive",
    "Cache-Control": "no-cache, no-transform",
    # https://nginx.org/en/docs/http/ngx_http_proxy_module.html
    "X-Accel-Buffering": "no",
    "Content-Encoding": "none",
}


def format_event(
    data: str,
    event: Optional[str] = None,
    id: Optional[str] = "",
    retry: Optional[int] = None,
) -> bytes:
    lines = []
    if id is not None:
        lines.append(f"id:{id}")
    if event is not None:
        lines.append(f"event:{event}")
    lines.append(f"data:{data}")
    if retry is not None:
        lines.append(f"retry:{retry}")
    return ("\n".join(lines) + "\n\n").encode("utf-8")


def version_event(value: str, retry_ms: int = DEFAULT_RETRY_MS) -> bytes:
    return format_event(value, event=VERSION_EVENT, id="", retry=retry_ms)

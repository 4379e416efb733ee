"""Fan-out of polled version values to subscribed sinks.

The broadcaster owns the subscriber set and the Poller's activation: the
first subscriber starts polling, removing the last one stops it. Set
mutation, the size check and the resulting start/stop happen under one
lock, so concurrent first-subscribers start the poller exactly once and a
stop can never land after a start that superseded it.
"""
from __future__ import annotations
import logging, threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from version_notifier.core.config import Settings
from version_notifier.core.poller import Poller
from version_notifier.core.sse import DEFAULT_RETRY_MS, version_event
from version_notifier.infra.sinks import Sink

logger = logging.getLogger("core.broadcaster")

DEFAULT_MAX_WRITE_FAILURES = 3


@dataclass
class _Subscriber:
    sink: Sink
    failures: int = 0


class Broadcaster:
    def __init__(
        self,
        poller: Poller,
        *,
        retry_ms: int = DEFAULT_RETRY_MS,
        max_write_failures: int = DEFAULT_MAX_WRITE_FAILURES,
    ) -> None:
        self.poller = poller
        self.poller.on_value = self.on_value
        self.retry_ms = retry_ms
        self.max_write_failures = max_write_failures
        # keyed by id(sink): membership is by identity, never equality
        self._subscribers: Dict[int, _Subscriber] = {}
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def is_subscribed(self, sink: Sink) -> bool:
        with self._lock:
            return id(sink) in self._subscribers

    def set_host(self, host: Optional[str]) -> bool:
        return self.poller.set_host(host)

    def subscribe(self, sink: Sink) -> None:
        with self._lock:
            key = id(sink)
            if key in self._subscribers:
                return
            self._subscribers[key] = _Subscriber(sink)
            count = len(self._subscribers)
            if count == 1:
                try:
                    self.poller.start()
                except Exception:
                    del self._subscribers[key]
                    raise
        logger.info("sink subscribed", extra={"sink": repr(sink), "subscribers": count})

    def unsubscribe(self, sink: Sink) -> bool:
        with self._lock:
            if self._subscribers.pop(id(sink), None) is None:
                return False
            count = len(self._subscribers)
            if count == 0:
                self.poller.stop()
        logger.info("sink unsubscribed", extra={"sink": repr(sink), "subscribers": count})
        return True

    def on_value(self, value: str) -> int:
        """Write one version frame to every current sink; returns deliveries."""
        frame = version_event(value, retry_ms=self.retry_ms)
        with self._lock:
            targets = list(self._subscribers.values())

        delivered = 0
        dead: List[Sink] = []
        for sub in targets:
            try:
                sub.sink.write(frame)
            except Exception as e:
                sub.failures += 1
                logger.warning(
                    "sink write failed (%d/%d): %s",
                    sub.failures,
                    self.max_write_failures,
                    e,
                    extra={"sink": repr(sub.sink)},
                )
                if self.max_write_failures and sub.failures >= self.max_write_failures:
                    dead.append(sub.sink)
            else:
                sub.failures = 0
                delivered += 1

        for sink in dead:
            self._evict(sink)
        return delivered

    def _evict(self, sink: Sink) -> None:
        if not self.unsubscribe(sink):
            return
        logger.warning("evicted failing sink", extra={"sink": repr(sink)})
        try:
            sink.close()
        except Exception as e:
            logger.warning("closing evicted sink failed: %s", e, extra={"sink": repr(sink)})


def build_broadcaster(settings: Settings) -> Broadcaster:
    poller = Poller(
        protocol=settings.upstream_protocol,
        version_path=settings.VERSION_PATH,
        interval=settings.POLL_INTERVAL_SECONDS,
        timeout=settings.FETCH_TIMEOUT_SECONDS,
    )
    return Broadcaster(
        poller,
        retry_ms=settings.SSE_RETRY_MS,
        max_write_failures=settings.SINK_MAX_FAILURES,
    )

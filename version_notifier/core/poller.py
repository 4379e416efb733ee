"""Timer-driven poll loop for the upstream version resource.

The Poller fetches ``{protocol}://{host}{version_path}`` once per cycle and
hands the body to ``on_value``. A successful cycle schedules the next one
after ``interval`` seconds, a failed one after ``interval / 2``.

Every ``start()`` opens a new generation. Timer callbacks and fetch
completions carry the generation they were scheduled under and are
dropped once ``stop()`` (or a later ``start()``) has moved on, so at most
one cycle is pending at a time and a fetch that completes after ``stop()``
neither delivers its value nor reschedules.
"""
from __future__ import annotations
import asyncio, logging, threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Set

from version_notifier.core.errors import FetchFailure
from version_notifier.infra.upstream import fetch_version, version_url

logger = logging.getLogger("core.poller")

DEFAULT_INTERVAL_SECONDS = 5.0

Fetcher = Callable[[str], Awaitable[str]]


@dataclass(frozen=True)
class PollerState:
    running: bool
    next_fire: Optional[asyncio.Handle]
    in_flight: bool
    target_host: Optional[str]
    next_delay: Optional[float]


class Poller:
    def __init__(
        self,
        on_value: Optional[Callable[[str], object]] = None,
        *,
        protocol: str = "https",
        version_path: str = "/version.txt",
        interval: float = DEFAULT_INTERVAL_SECONDS,
        timeout: float = 3.0,
        fetch: Optional[Fetcher] = None,
    ) -> None:
        self.on_value = on_value
        self.protocol = protocol
        self.version_path = version_path
        self.interval = interval
        self.timeout = timeout
        self._fetch = fetch or self._fetch_over_http
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running = False
        self._generation = 0
        self._handle: Optional[asyncio.Handle] = None
        self._in_flight = False
        self._host: Optional[str] = None
        self._next_delay: Optional[float] = None
        self._tasks: Set[asyncio.Task] = set()

    # -------- configuration --------
    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        with self._lock:
            self._loop = loop

    def set_host(self, host: Optional[str]) -> bool:
        """Record the upstream host; only the first non-empty value sticks."""
        with self._lock:
            if self._host or not host:
                return False
            self._host = host
        logger.info("upstream host set", extra={"host": host})
        return True

    @property
    def state(self) -> PollerState:
        with self._lock:
            return PollerState(
                running=self._running,
                next_fire=self._handle,
                in_flight=self._in_flight,
                target_host=self._host,
                next_delay=self._next_delay,
            )

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    # -------- lifecycle --------
    def start(self) -> bool:
        """Begin polling with an immediate fetch. No-op when already running."""
        with self._lock:
            if self._running:
                return False
            loop = self._resolve_loop()
            self._running = True
            self._generation += 1
            self._next_delay = 0.0
            self._handle = loop.call_soon_threadsafe(self._fire, self._generation)
        logger.info("poller started")
        return True

    def stop(self) -> bool:
        """Cancel the pending cycle. An in-flight fetch finishes but is discarded."""
        with self._lock:
            if not self._running:
                return False
            self._running = False
            self._generation += 1
            self._in_flight = False
            self._next_delay = None
            handle, self._handle = self._handle, None
            loop = self._loop
        if handle is not None and loop is not None:
            if self._on_loop_thread(loop):
                handle.cancel()
            elif not loop.is_closed():
                loop.call_soon_threadsafe(handle.cancel)
        logger.info("poller stopped")
        return True

    async def aclose(self) -> None:
        self.stop()
        tasks = list(self._tasks)
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # -------- internals --------
    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = self._loop
        if loop is None or loop.is_closed():
            raise RuntimeError(
                "Poller has no event loop: call bind_loop() or start() from a coroutine"
            )
        self._loop = loop
        return loop

    @staticmethod
    def _on_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return self._running and generation == self._generation

    def _fire(self, generation: int) -> None:
        with self._lock:
            if not self._running or generation != self._generation:
                return
            self._handle = None
            self._in_flight = True
            task = self._loop.create_task(self._cycle(generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch_over_http(self, url: str) -> str:
        return await asyncio.to_thread(fetch_version, url, self.timeout)

    async def _cycle(self, generation: int) -> None:
        delay = self.interval
        try:
            with self._lock:
                host = self._host
            url = version_url(self.protocol, host, self.version_path)
            value = await self._fetch(url)
        except FetchFailure as e:
            logger.error(
                "version fetch failed: %s",
                e,
                extra={"url": e.url, "status": e.status},
            )
            delay = self.interval / 2
        except Exception as e:
            logger.exception("version fetch failed: %s", e)
            delay = self.interval / 2
        else:
            if self._is_current(generation):
                self._deliver(value)
            else:
                logger.debug("discarding value fetched before stop")
        self._reschedule(generation, delay)

    def _deliver(self, value: str) -> None:
        if self.on_value is None:
            return
        try:
            self.on_value(value)
        except Exception:
            logger.exception("on_value callback failed")

    def _reschedule(self, generation: int, delay: float) -> None:
        with self._lock:
            if not self._running or generation != self._generation:
                return
            self._in_flight = False
            self._next_delay = delay
            self._handle = self._loop.call_later(delay, self._fire, generation)
        logger.debug("next fetch scheduled", extra={"delay": delay})

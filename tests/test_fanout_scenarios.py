import asyncio
from version_notifier.core.broadcaster import Broadcaster
from version_notifier.core.poller import Poller
from version_notifier.infra import upstream


class RecordingSink:
    def __init__(self):
        self.chunks = []

    def write(self, chunk):
        self.chunks.append(chunk)

    def close(self):
        pass


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


async def _until(pred, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not pred():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.001)


def test_subscribe_fetch_fanout_then_stop():
    async def run():
        calls = []

        async def fetch(url):
            calls.append(url)
            return "1.2.3"

        b = Broadcaster(Poller(protocol="https", fetch=fetch, interval=5.0))
        a, c = RecordingSink(), RecordingSink()
        b.set_host("example.com")
        b.subscribe(a)
        await _until(lambda: a.chunks)
        assert a.chunks == [b"id:\nevent:version\ndata:1.2.3\nretry:500\n\n"]
        assert calls == ["https://example.com/version.txt"]

        # second subscriber waits for the next cycle
        b.subscribe(c)
        await asyncio.sleep(0.02)
        assert len(calls) == 1
        assert c.chunks == []

        b.unsubscribe(a)
        assert b.poller.is_running
        b.unsubscribe(c)
        assert not b.poller.is_running
        assert b.poller.state.next_fire is None
        await asyncio.sleep(0.02)
        assert len(calls) == 1
    asyncio.run(run())


def test_upstream_500_delivers_nothing_and_retries_at_half_interval(monkeypatch):
    requested = []

    def fake_get(url, headers=None, timeout=None):
        requested.append((url, headers))
        return FakeResponse(500, "oops")

    monkeypatch.setattr(upstream.requests, "get", fake_get)

    async def run():
        b = Broadcaster(Poller(protocol="https", interval=5.0))
        s = RecordingSink()
        b.set_host("example.com")
        b.subscribe(s)
        await _until(lambda: b.poller.state.next_delay == 2.5)
        assert s.chunks == []
        assert requested[0][0] == "https://example.com/version.txt"
        assert requested[0][1]["Cache-Control"] == "no-cache"
        b.unsubscribe(s)
        await b.poller.aclose()
    asyncio.run(run())


def test_upstream_200_over_http_client(monkeypatch):
    monkeypatch.setattr(
        upstream.requests, "get", lambda url, headers=None, timeout=None: FakeResponse(200, "4.5.6")
    )

    async def run():
        b = Broadcaster(Poller(protocol="http", interval=5.0), retry_ms=750)
        s = RecordingSink()
        b.set_host("localhost:3000")
        b.subscribe(s)
        await _until(lambda: s.chunks)
        assert s.chunks == [b"id:\nevent:version\ndata:4.5.6\nretry:750\n\n"]
        assert b.poller.state.next_delay == 5.0
        b.unsubscribe(s)
        await b.poller.aclose()
    asyncio.run(run())


def test_resubscribe_restarts_polling():
    async def run():
        calls = []

        async def fetch(url):
            calls.append(url)
            return f"v{len(calls)}"

        b = Broadcaster(Poller(fetch=fetch, interval=5.0))
        b.set_host("example.com")
        s = RecordingSink()
        b.subscribe(s)
        await _until(lambda: s.chunks)
        b.unsubscribe(s)
        b.subscribe(s)
        await _until(lambda: len(s.chunks) == 2)
        assert s.chunks[1] == b"id:\nevent:version\ndata:v2\nretry:500\n\n"
        b.unsubscribe(s)
    asyncio.run(run())

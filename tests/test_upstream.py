import pytest
import requests
from version_notifier.core.errors import FetchFailure, MissingConfiguration
from version_notifier.infra import upstream


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


def test_version_url():
    assert upstream.version_url("https", "example.com", "/version.txt") == "https://example.com/version.txt"
    assert upstream.version_url("http", "localhost:3000", "version.txt") == "http://localhost:3000/version.txt"


def test_version_url_without_host():
    with pytest.raises(MissingConfiguration):
        upstream.version_url("https", None, "/version.txt")
    # missing host counts as a fetch failure
    assert issubclass(MissingConfiguration, FetchFailure)


def test_fetch_version_ok(monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen.update(url=url, headers=headers, timeout=timeout)
        return FakeResponse(200, "1.2.3")

    monkeypatch.setattr(upstream.requests, "get", fake_get)
    assert upstream.fetch_version("https://example.com/version.txt", timeout=1.5) == "1.2.3"
    assert seen["headers"]["Cache-Control"] == "no-cache"
    assert seen["headers"]["Pragma"] == "no-cache"
    assert seen["timeout"] == 1.5


def test_fetch_version_non_200(monkeypatch):
    monkeypatch.setattr(
        upstream.requests, "get", lambda url, headers=None, timeout=None: FakeResponse(404, "nope")
    )
    with pytest.raises(FetchFailure) as ei:
        upstream.fetch_version("https://example.com/version.txt")
    assert ei.value.status == 404
    assert ei.value.url == "https://example.com/version.txt"


def test_fetch_version_transport_error(monkeypatch):
    def boom(url, headers=None, timeout=None):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(upstream.requests, "get", boom)
    with pytest.raises(FetchFailure) as ei:
        upstream.fetch_version("https://example.com/version.txt")
    assert ei.value.status is None
    assert "refused" in str(ei.value)

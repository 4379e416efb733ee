from __future__ import annotations
from typing import Optional


class VersionNotifierError(Exception):
    pass


class FetchFailure(VersionNotifierError):
    """Upstream version fetch failed (transport error or non-200 status)."""

    def __init__(
        self, message: str, url: Optional[str] = None, status: Optional[int] = None
    ):
        super().__init__(message)
        self.url = url
        self.status = status


class MissingConfiguration(FetchFailure):
    """A required setting (upstream host, build-time version) is absent."""


class SinkWriteFailure(VersionNotifierError):
    pass

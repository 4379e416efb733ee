from __future__ import annotations
import logging
from typing import Optional

import requests

from version_notifier.core.errors import FetchFailure, MissingConfiguration

logger = logging.getLogger("infra.upstream")

NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


def version_url(protocol: str, host: Optional[str], path: str) -> str:
    if not host:
        raise MissingConfiguration("upstream host is not set")
    return f"{protocol}://{host}/{path.lstrip('/')}"


def fetch_version(url: str, timeout: float = 3.0) -> str:
    """Blocking GET of the version resource; returns the body text on 200."""
    try:
        res = requests.get(url, headers=NO_CACHE_HEADERS, timeout=timeout)
    except requests.RequestException as e:
        raise FetchFailure(f"GET {url} failed: {e}", url=url) from e
    if res.status_code != 200:
        raise FetchFailure(
            f"GET {url} returned {res.status_code}", url=url, status=res.status_code
        )
    return res.text

from __future__ import annotations

"""Lightweight HTTP client util with retry.

Uses stdlib urllib; the rate feed is a single small GET so a full client is not
needed. Focus: GET bytes / JSON with a caller supplied timeout and limited retries.
"""
import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Optional

logger = logging.getLogger("fxconvert.http")

USER_AGENT = "fxconvert/0.1"


class HttpError(Exception):
    pass


def get_bytes(
    url: str, *, timeout: float = 10.0, retries: int = 2, backoff: float = 0.5
) -> bytes:
    last_err: Optional[Exception] = None
    request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    for attempt in range(retries + 1):
        try:
            with urllib.request.urlopen(request, timeout=timeout) as resp:  # nosec B310
                status = getattr(resp, "status", 200)
                if status >= 400:
                    raise HttpError(f"HTTP {status} for {url}")
                return resp.read()
        except (
            urllib.error.URLError,
            http.client.HTTPException,
            TimeoutError,
            ConnectionError,
            HttpError,
        ) as e:
            last_err = e
            logger.debug("GET %s failed (attempt %d/%d): %s", url, attempt + 1, retries + 1, e)
            if attempt == retries:
                break
            time.sleep(backoff * (2**attempt))
    raise HttpError(f"Failed to fetch {url}: {last_err}")


def get_json(
    url: str, *, timeout: float = 10.0, retries: int = 2, backoff: float = 0.5
) -> Any:
    data = get_bytes(url, timeout=timeout, retries=retries, backoff=backoff)
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise HttpError(f"Invalid JSON from {url}: {e}") from e

# auh/probe.py
"""
Availability probe for the primary source.

One GET per batch; 2xx and 3xx mean up, everything else (other statuses,
transport errors, a status that cannot be read) means down so the batch
falls back to the mirror.
"""

from __future__ import annotations

import http.client
import urllib.error
import urllib.request
from typing import Optional

from auh.config import get_config
from auh.logging import get_logger

logger = get_logger("probe")


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    # keep the first status: a redirect counts as "up" without chasing it
    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


def _status_of(url: str, timeout: float) -> Optional[int]:
    opener = urllib.request.build_opener(_NoRedirect)
    req = urllib.request.Request(url, method="GET", headers={"User-Agent": "auh"})
    try:
        with opener.open(req, timeout=timeout) as resp:
            return int(resp.status)
    except urllib.error.HTTPError as e:
        return int(e.code) if e.code is not None else None


def classify_status(code: Optional[int]) -> bool:
    return code is not None and 200 <= code < 400


def probe(url: Optional[str] = None, timeout: Optional[float] = None) -> bool:
    cfg = get_config()
    url = url or cfg.get("sources.aur_url")
    timeout = timeout if timeout is not None else float(cfg.get("sources.http_timeout", 30))
    try:
        code = _status_of(url, timeout)
    except http.client.HTTPException as e:
        logger.warning("Failed to read HTTP status from %s (%r); using mirror", url, e)
        return False
    except (urllib.error.URLError, OSError, ValueError) as e:
        logger.warning("Primary source %s unreachable (%s); using mirror", url, e)
        return False
    if code is None:
        logger.warning("Failed to read HTTP status from %s; using mirror", url)
        return False
    up = classify_status(code)
    if up:
        logger.debug("Primary source %s is up (HTTP %s)", url, code)
    else:
        logger.warning("Primary source %s returned HTTP %s; using mirror", url, code)
    return up

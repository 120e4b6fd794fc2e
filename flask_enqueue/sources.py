"""Existence, last-modified and body lookups for asset sources.

Sources served from the app's own static folder are read from disk; anything
else is treated as a URL and probed over HTTP. Every failure degrades to
"missing": callers get ``False``, ``None`` or ``""`` and the cause is logged
at debug level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timezone
from email.utils import parsedate_to_datetime
from pathlib import Path

import requests
from flask import current_app, has_app_context

from .config import DEFAULT_PROBE_TIMEOUT

logger = logging.getLogger(__name__)

_FETCH_TIMEOUT = 5


def probe_timeout() -> float:
    if has_app_context():
        return float(current_app.config.get("ENQUEUE_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT))
    return DEFAULT_PROBE_TIMEOUT


def static_path_for(src: str) -> Path | None:
    """Map ``/static/...`` style sources to a file inside the app's static folder."""
    if not src or not has_app_context():
        return None
    static_folder = current_app.static_folder
    url_path = current_app.static_url_path
    if not static_folder or url_path is None:
        return None
    prefix = url_path.rstrip("/") + "/"
    if not src.startswith(prefix):
        return None
    root = Path(static_folder).resolve()
    candidate = (root / src[len(prefix):].split("?", 1)[0]).resolve()
    if root not in candidate.parents:
        return None
    return candidate


def head(url: str) -> requests.Response | None:
    try:
        return requests.head(url, timeout=probe_timeout(), allow_redirects=False)
    except requests.RequestException as exc:
        logger.debug("HEAD %s failed: %s", url, exc)
        return None


@dataclass(frozen=True)
class SourceProbe:
    exists: bool
    last_modified: int | None = None


MISSING = SourceProbe(exists=False)


def probe_source(src: str) -> SourceProbe:
    """Existence and last-modified time of ``src`` from a single lookup."""
    path = static_path_for(src)
    if path is not None:
        if not path.is_file():
            return MISSING
        try:
            return SourceProbe(exists=True, last_modified=int(path.stat().st_mtime))
        except OSError as exc:
            logger.debug("Could not stat %s: %s", path, exc)
            return SourceProbe(exists=True)

    response = head(src) if src else None
    if response is None or response.status_code != 200:
        return MISSING
    raw = response.headers.get("Last-Modified")
    return SourceProbe(exists=True, last_modified=_parse_last_modified(src, raw))


def _parse_last_modified(src: str, raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        modified = parsedate_to_datetime(raw)
    except (TypeError, ValueError) as exc:
        logger.debug("Unparseable Last-Modified %r for %s: %s", raw, src, exc)
        return None
    # "-0000" dates come back naive; HTTP dates are always UTC.
    if modified.tzinfo is None:
        modified = modified.replace(tzinfo=timezone.utc)
    return int(modified.timestamp())


def source_exists(src: str) -> bool:
    return probe_source(src).exists


def source_last_modified(src: str) -> int | None:
    """Unix timestamp the source was last changed, or None when unknown."""
    return probe_source(src).last_modified


def read_source(src: str) -> str:
    path = static_path_for(src)
    if path is not None:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Could not read %s: %s", path, exc)
            return ""
    if not src:
        return ""
    try:
        response = requests.get(src, timeout=_FETCH_TIMEOUT)
    except requests.RequestException as exc:
        logger.debug("GET %s failed: %s", src, exc)
        return ""
    if response.status_code != 200:
        logger.debug("GET %s returned %s", src, response.status_code)
        return ""
    return response.text or ""

"""Normalisation and lexical SSRF screening of lead website URLs."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlparse, urlunparse

from qualifier.core.errors import InvalidURL

logger = logging.getLogger(__name__)

_BLOCKED_HOSTS = {"localhost"}
_BLOCKED_PREFIXES = ("127.", "10.", "192.168.")
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def ensure_scheme(raw_url: str) -> str:
    url = (raw_url or "").strip()
    if url and not _SCHEME_RE.match(url):
        url = f"https://{url}"
    return url


def validate_url(raw_url: str) -> str:
    """Return an absolute http(s) URL or raise :class:`InvalidURL`.

    This is a lexical hostname check only; names that resolve to private
    addresses through DNS are not caught.
    """

    url = ensure_scheme(raw_url)
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as exc:
        raise InvalidURL() from exc

    if parsed.scheme not in ("http", "https") or not hostname:
        raise InvalidURL()

    hostname = hostname.lower()
    if hostname in _BLOCKED_HOSTS or hostname.startswith(_BLOCKED_PREFIXES):
        logger.info("Rejected private or loopback host %s", hostname)
        raise InvalidURL()

    return urlunparse(parsed._replace(fragment=""))

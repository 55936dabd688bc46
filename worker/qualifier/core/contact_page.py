"""Second-hop lookup of a contact page when the home page has no form."""

from __future__ import annotations

import logging
from typing import Iterable, Optional
from urllib.parse import urldefrag, urljoin, urlparse

import requests

from qualifier.core.errors import ScanError
from qualifier.core.fetcher import FetchPolicy, fetch_page
from qualifier.core.signals import ParsedPage, has_contact_form
from qualifier.core.url_gate import validate_url

logger = logging.getLogger(__name__)

CONTACT_HREF_KEYWORDS = ("contact", "get-in-touch")
CONTACT_TEXT_KEYWORDS = ("contact",)


def find_contact_href(page: ParsedPage) -> Optional[str]:
    """Return the href of the first anchor that looks like a contact link."""

    for href, text in page.anchors:
        lowered = href.lower()
        if lowered.startswith(("mailto:", "tel:")):
            continue
        if any(keyword in lowered for keyword in CONTACT_HREF_KEYWORDS) or any(
            keyword in text for keyword in CONTACT_TEXT_KEYWORDS
        ):
            return href or None
    return None


def _comparable(url: str) -> str:
    parsed = urlparse(urldefrag(url)[0])
    return parsed._replace(netloc=parsed.netloc.lower(), path=parsed.path or "/").geturl()


def resolve_contact_url(page: ParsedPage, href: str) -> Optional[str]:
    """Absolute, fragment-free http(s) URL for ``href`` or ``None``."""

    candidate, _ = urldefrag(urljoin(page.base_url, href))
    if urlparse(candidate).scheme not in ("http", "https"):
        return None
    return candidate


def probe_contact_page(
    session: requests.Session,
    page: ParsedPage,
    primary_urls: Iterable[str],
    policy: FetchPolicy,
) -> Optional[str]:
    """URL of a discovered contact page that carries a form, else ``None``.

    Failures are logged and swallowed; the probe never raises.
    """

    href = find_contact_href(page)
    contact_url = resolve_contact_url(page, href) if href else None
    if contact_url is None:
        return None
    if _comparable(contact_url) in {_comparable(url) for url in primary_urls}:
        logger.debug("Contact link of %s points back at the home page", page.base_url)
        return None

    try:
        contact_url = validate_url(contact_url)
        fetched = fetch_page(session, contact_url, policy)
    except ScanError as exc:
        logger.debug("Contact page %s skipped: %s", contact_url, exc)
        return None

    if has_contact_form(ParsedPage(fetched.html, fetched.final_url)):
        return fetched.final_url
    return None

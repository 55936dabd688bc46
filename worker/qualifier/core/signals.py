"""Heuristic signal extraction from a lead's web page.

Every signal is produced by one small detector that reads a ``ParsedPage``.
Detectors never execute scripts; they match on markup and on the visible
text of the page, case-insensitively.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from qualifier.core.models import FORM_SOURCE_HOMEPAGE, FORM_SOURCE_NONE

PHONE_REGEX = re.compile(r"(\+\d{1,2}\s)?\(?\d{3}\)?[\s.-]\d{3}[\s.-]\d{4}")
EMAIL_REGEX = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)

BOOKING_KEYWORDS = (
    "calendly",
    "acuity",
    "square",
    "setmore",
    "simplybook",
    "housecallpro",
    "jobber",
    "servicetitan",
    "book",
    "schedule",
)
CTA_KEYWORDS = ("call now", "get quote", "request quote", "book", "schedule")
HOURS_KEYWORDS = ("hours", "monday", "tuesday", "wednesday", "thursday", "friday")
REVIEW_KEYWORDS = ("reviews", "testimonials")
REVIEW_SELECTOR = ".stars, .star, .rating"

_INVISIBLE_TAGS = ("script", "style", "noscript", "template")


class ParsedPage:
    """A fetched HTML document reduced to what the detectors look at."""

    def __init__(self, html: str, base_url: str, origin_url: Optional[str] = None) -> None:
        self.base_url = base_url
        self.origin_url = base_url if origin_url is None else origin_url
        self.soup = BeautifulSoup(html or "", "html.parser")
        for tag in self.soup.find_all(_INVISIBLE_TAGS):
            tag.decompose()

        body = self.soup.body or self.soup
        self.text = body.get_text(" ", strip=True)
        self.lower_text = self.text.lower()
        self.anchors: List[Tuple[str, str]] = [
            ((anchor.get("href") or "").strip(), anchor.get_text(" ", strip=True).lower())
            for anchor in self.soup.find_all("a")
        ]

    def text_contains(self, keywords) -> bool:
        return any(keyword in self.lower_text for keyword in keywords)


Detector = Callable[[ParsedPage, Optional[str]], Any]


def has_https(page: ParsedPage, city: Optional[str] = None) -> bool:
    """Whether the URL the lead lists is https, regardless of redirects."""
    return page.origin_url.strip().lower().startswith("https://")


def has_meta_viewport(page: ParsedPage, city: Optional[str] = None) -> bool:
    return page.soup.select_one('meta[name="viewport" i]') is not None


def has_tel_link(page: ParsedPage, city: Optional[str] = None) -> bool:
    return any(href.lower().startswith("tel:") for href, _ in page.anchors)


def phone_visible(page: ParsedPage, city: Optional[str] = None) -> bool:
    return PHONE_REGEX.search(page.text) is not None


def email_visible(page: ParsedPage, city: Optional[str] = None) -> bool:
    return EMAIL_REGEX.search(page.text) is not None


def has_contact_form(page: ParsedPage, city: Optional[str] = None) -> bool:
    return page.soup.find("form") is not None


def has_booking_link(page: ParsedPage, city: Optional[str] = None) -> bool:
    for href, text in page.anchors:
        lowered_href = href.lower()
        if any(keyword in lowered_href or keyword in text for keyword in BOOKING_KEYWORDS):
            return True
    return False


def has_hours(page: ParsedPage, city: Optional[str] = None) -> bool:
    return page.text_contains(HOURS_KEYWORDS)


def has_service_area(page: ParsedPage, city: Optional[str] = None) -> Optional[bool]:
    """``None`` when the lead has no city to look for."""
    if not city or not city.strip():
        return None
    return city.strip().lower() in page.lower_text


def has_reviews(page: ParsedPage, city: Optional[str] = None) -> bool:
    if page.text_contains(REVIEW_KEYWORDS):
        return True
    return page.soup.select_one(REVIEW_SELECTOR) is not None


def has_cta(page: ParsedPage, city: Optional[str] = None) -> bool:
    return page.text_contains(CTA_KEYWORDS)


SIGNAL_DETECTORS: Dict[str, Detector] = {
    "has_https": has_https,
    "has_meta_viewport": has_meta_viewport,
    "has_tel_link": has_tel_link,
    "phone_visible": phone_visible,
    "email_visible": email_visible,
    "has_contact_form": has_contact_form,
    "has_booking_link": has_booking_link,
    "has_hours": has_hours,
    "has_service_area": has_service_area,
    "has_reviews": has_reviews,
    "has_cta": has_cta,
}


def extract_signals(page: ParsedPage, city: Optional[str] = None) -> Dict[str, Any]:
    """Run every detector over ``page`` and return a fresh signal set."""

    signals = {name: detector(page, city) for name, detector in SIGNAL_DETECTORS.items()}
    signals["contact_form_source"] = FORM_SOURCE_HOMEPAGE if signals["has_contact_form"] else FORM_SOURCE_NONE
    return signals

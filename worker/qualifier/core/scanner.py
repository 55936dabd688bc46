"""Single-lead website qualification scan.

``scan_lead`` takes one lead and returns one ``ScanResult``. It keeps no
state between calls, never touches storage, and never raises: every
failure on the primary page becomes a low-confidence result.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

import requests

from qualifier.core.contact_page import probe_contact_page
from qualifier.core.errors import ScanError
from qualifier.core.fetcher import FetchPolicy, fetch_page
from qualifier.core.fusion import CLOSED_REASON, fuse_score
from qualifier.core.models import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    FORM_SOURCE_CONTACT_PAGE,
    Lead,
    ScanResult,
)
from qualifier.core.recommend import choose_angle, top_reasons
from qualifier.core.scoring import NO_WEBSITE_REASON, NO_WEBSITE_SCORE, assess_page
from qualifier.core.signals import ParsedPage, extract_signals
from qualifier.core.url_gate import validate_url

logger = logging.getLogger(__name__)

UNREACHABLE_PREFIX = "Site unreachable: "


@dataclass(frozen=True)
class PageEvidence:
    """What the website stages learned about a lead."""

    score: int
    confidence: str
    findings: Dict[str, Any] = field(default_factory=dict)
    missing: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()
    error: Optional[str] = None


@contextmanager
def _session_scope(session: Optional[requests.Session]) -> Iterator[requests.Session]:
    if session is not None:
        yield session
        return
    owned = requests.Session()
    try:
        yield owned
    finally:
        owned.close()


def _probe_safely(session, page: ParsedPage, primary_urls, policy: FetchPolicy) -> Optional[str]:
    try:
        return probe_contact_page(session, page, primary_urls, policy)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Contact page probe failed for %s: %s", page.base_url, exc)
        return None


def _unreachable(message: str) -> PageEvidence:
    return PageEvidence(score=0, confidence=CONFIDENCE_LOW, findings={"error": message}, error=message)


def evaluate_website(
    lead: Lead,
    *,
    session: Optional[requests.Session] = None,
    policy: Optional[FetchPolicy] = None,
) -> PageEvidence:
    """Fetch and score the lead's website, following one contact link at most."""

    policy = policy or FetchPolicy()
    try:
        url = validate_url(lead.website_url or "")
        with _session_scope(session) as http:
            fetched = fetch_page(http, url, policy)
            page = ParsedPage(fetched.html, fetched.final_url, origin_url=lead.website_url)
            signals = {**extract_signals(page, lead.city), "final_url": fetched.final_url}
            confidence = CONFIDENCE_HIGH

            if not signals["has_contact_form"]:
                contact_url = _probe_safely(http, page, (url, fetched.final_url), policy)
                if contact_url:
                    signals = {
                        **signals,
                        "has_contact_form": True,
                        "contact_form_source": FORM_SOURCE_CONTACT_PAGE,
                        "contact_page_url": contact_url,
                    }
                    confidence = CONFIDENCE_MEDIUM
    except ScanError as exc:
        logger.warning("Website scan failed for %s (%s): %s", lead.name, lead.website_url, exc)
        return _unreachable(str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error scanning %s: %s", lead.website_url, exc)
        return _unreachable(str(exc) or exc.__class__.__name__)

    assessment = assess_page(signals, lead.directory)
    return PageEvidence(
        score=assessment.score,
        confidence=confidence,
        findings=signals,
        missing=assessment.missing,
        notes=assessment.notes,
    )


def scan_lead(
    lead: Lead,
    *,
    session: Optional[requests.Session] = None,
    policy: Optional[FetchPolicy] = None,
) -> ScanResult:
    """Qualify one lead from its website and directory data."""

    leading = []
    if lead.directory.is_closed:
        leading.append(CLOSED_REASON)

    if lead.website_url:
        evidence = evaluate_website(lead, session=session, policy=policy)
        if evidence.error:
            leading.append(f"{UNREACHABLE_PREFIX}{evidence.error}")
    else:
        evidence = PageEvidence(score=NO_WEBSITE_SCORE, confidence=CONFIDENCE_LOW)
        leading.append(NO_WEBSITE_REASON)

    result = ScanResult(
        score=fuse_score(evidence.score, lead.directory),
        reasons=top_reasons(lead, leading, evidence.notes, evidence.missing),
        missing=evidence.missing,
        recommended_angle=choose_angle(lead, evidence.missing),
        confidence=evidence.confidence,
        findings=dict(evidence.findings),
        error=evidence.error,
    )
    logger.info(
        "Scanned lead=%s score=%d confidence=%s missing=%d",
        lead.id or lead.name,
        result.score,
        result.confidence,
        len(result.missing),
    )
    return result

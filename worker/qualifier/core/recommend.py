"""Outreach angle and top-reason synthesis."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

from qualifier.core.models import Lead
from qualifier.core.scoring import MISSING_BOOKING, MISSING_CONTACT_FORM, MISSING_HOURS, MISSING_TEL_LINK

MAX_REASONS = 3

DEFAULT_ANGLE = "Simple conversion boost — stronger CTA + lead capture"
AI_ANGLE_PREFIX = "AI Insight: "
ANGLE_CLOSED = "Skip — business closed"
ANGLE_NO_WEBSITE = "Google listing has no website — quick 1-page call/quote page"
ANGLE_NO_CAPTURE = "No booking/contact capture — missed leads"
ANGLE_NO_TAP_TO_CALL = "Mobile tap-to-call missing — friction"
ANGLE_AFTER_HOURS = "Missed after-hours calls — instant SMS follow-up"


def ai_angle(lead: Lead) -> Optional[str]:
    enrichment = lead.enrichment
    if enrichment is None or not enrichment.is_enriched:
        return None
    hook = (enrichment.outreach_hook or "").strip()
    if not hook:
        return None
    return f"{AI_ANGLE_PREFIX}{hook}"


def choose_angle(lead: Lead, missing: Sequence[str]) -> str:
    """Pick the outreach angle; an AI hook beats every heuristic."""

    hooked = ai_angle(lead)
    if hooked:
        return hooked

    if lead.directory.is_closed:
        return ANGLE_CLOSED
    if not lead.website_url:
        return ANGLE_NO_WEBSITE
    if MISSING_BOOKING in missing and MISSING_CONTACT_FORM in missing:
        return ANGLE_NO_CAPTURE
    if MISSING_TEL_LINK in missing:
        return ANGLE_NO_TAP_TO_CALL
    if MISSING_HOURS in missing:
        return ANGLE_AFTER_HOURS
    return DEFAULT_ANGLE


def _unique(items: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(item for item in items if item))


def top_reasons(
    lead: Lead,
    leading: Sequence[str],
    notes: Sequence[str],
    missing: Sequence[str],
) -> Tuple[str, ...]:
    """Ordered, de-duplicated reasons, at most ``MAX_REASONS`` long.

    ``leading`` holds closure and reachability reasons, which always come
    first; page notes and the first missing signals follow.
    """

    reasons = _unique([*leading, *notes, *missing[:MAX_REASONS]])

    enrichment = lead.enrichment
    if len(reasons) < MAX_REASONS and enrichment is not None and enrichment.is_enriched:
        weakness = enrichment.first_weakness
        if weakness:
            reasons = _unique([*reasons, f"Weakness: {weakness}"])

    return reasons[:MAX_REASONS]

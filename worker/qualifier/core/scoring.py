"""Deterministic deficiency scoring of an evaluated web page.

Higher score = more missing conversion basics = better outreach candidate.
The policy is a fixed table so it can be audited without fetching anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Tuple

from qualifier.core.models import FORM_SOURCE_CONTACT_PAGE, DirectoryListing

Signals = Mapping[str, Any]
Condition = Callable[[Signals, DirectoryListing], bool]

NO_WEBSITE_SCORE = 2
NO_WEBSITE_REASON = "No website listed"

MISSING_BOOKING = "No booking link found"
MISSING_CONTACT_FORM = "No contact form on homepage"
MISSING_TEL_LINK = "No clickable phone link"
MISSING_VIEWPORT = "Not mobile optimized"
MISSING_HOURS = "No business hours found"
MISSING_SERVICE_AREA = "Service area not matched"
MISSING_REVIEWS = "No reviews/testimonials found"

NOTE_CONTACT_FORM_HIDDEN = "Contact form hidden on secondary page"
NOTE_HOURS_ON_DIRECTORY = "Hours missing on website (found on Google)"


@dataclass(frozen=True)
class PenaltyRule:
    label: str
    penalty: int
    applies: Condition


@dataclass(frozen=True)
class NoteRule:
    label: str
    applies: Condition


@dataclass(frozen=True)
class PageAssessment:
    score: int
    missing: Tuple[str, ...]
    notes: Tuple[str, ...]


PENALTY_RULES: Tuple[PenaltyRule, ...] = (
    PenaltyRule(MISSING_BOOKING, 2, lambda s, d: not s.get("has_booking_link")),
    PenaltyRule(MISSING_CONTACT_FORM, 1, lambda s, d: not s.get("has_contact_form")),
    PenaltyRule(MISSING_TEL_LINK, 1, lambda s, d: not s.get("has_tel_link")),
    PenaltyRule(MISSING_VIEWPORT, 1, lambda s, d: not s.get("has_meta_viewport")),
    PenaltyRule(MISSING_HOURS, 1, lambda s, d: not s.get("has_hours") and not d.hours_present),
    PenaltyRule(MISSING_SERVICE_AREA, 1, lambda s, d: not s.get("has_service_area")),
    PenaltyRule(MISSING_REVIEWS, 1, lambda s, d: not s.get("has_reviews")),
)

# Recorded as reasons, never penalised.
NOTE_RULES: Tuple[NoteRule, ...] = (
    NoteRule(
        NOTE_CONTACT_FORM_HIDDEN,
        lambda s, d: bool(s.get("has_contact_form")) and s.get("contact_form_source") == FORM_SOURCE_CONTACT_PAGE,
    ),
    NoteRule(NOTE_HOURS_ON_DIRECTORY, lambda s, d: not s.get("has_hours") and d.hours_present),
)


def assess_page(signals: Signals, directory: DirectoryListing) -> PageAssessment:
    """Fold the penalty and note tables over one signal set."""

    triggered = [rule for rule in PENALTY_RULES if rule.applies(signals, directory)]
    notes = tuple(rule.label for rule in NOTE_RULES if rule.applies(signals, directory))
    return PageAssessment(
        score=sum(rule.penalty for rule in triggered),
        missing=tuple(rule.label for rule in triggered),
        notes=notes,
    )

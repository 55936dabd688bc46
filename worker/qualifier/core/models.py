"""Core data models shared by the lead qualification scanner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

CONFIDENCE_LOW = "low"
CONFIDENCE_MEDIUM = "medium"
CONFIDENCE_HIGH = "high"

FORM_SOURCE_HOMEPAGE = "homepage"
FORM_SOURCE_CONTACT_PAGE = "contact_page"
FORM_SOURCE_NONE = "none"


@dataclass(frozen=True, slots=True)
class DirectoryListing:
    """Business-directory metadata scraped alongside the lead."""

    verified: bool = False
    claimed: bool = False
    permanently_closed: bool = False
    temporarily_closed: bool = False
    hours_present: bool = False
    rating: Optional[float] = None
    review_count: Optional[int] = None

    @property
    def is_closed(self) -> bool:
        return self.permanently_closed or self.temporarily_closed


@dataclass(frozen=True, slots=True)
class Enrichment:
    """Pre-computed AI analysis attached to a lead."""

    status: Optional[str] = None
    outreach_hook: Optional[str] = None
    weaknesses: Tuple[str, ...] = ()

    @property
    def is_enriched(self) -> bool:
        return self.status == "enriched"

    @property
    def first_weakness(self) -> Optional[str]:
        return self.weaknesses[0] if self.weaknesses else None


@dataclass(frozen=True, slots=True)
class Lead:
    """Read-only snapshot of the business being qualified."""

    name: str
    city: Optional[str] = None
    website: Optional[str] = None
    directory: DirectoryListing = field(default_factory=DirectoryListing)
    enrichment: Optional[Enrichment] = None
    id: Optional[str] = None

    @property
    def website_url(self) -> Optional[str]:
        value = (self.website or "").strip()
        return value or None


@dataclass(frozen=True, slots=True)
class ScanResult:
    score: int
    reasons: Tuple[str, ...]
    missing: Tuple[str, ...]
    recommended_angle: str
    confidence: str
    findings: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "reasons": list(self.reasons),
            "missing": list(self.missing),
            "recommended_angle": self.recommended_angle,
            "confidence": self.confidence,
            "findings": dict(self.findings),
            "error": self.error,
        }

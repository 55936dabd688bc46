"""Utilities for mapping lead rows to scanner models and scan results back to rows."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from qualifier.core.models import DirectoryListing, Enrichment, Lead, ScanResult

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"1", "true", "yes", "y", "t"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _as_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Unable to parse float from %r", value)
        return None


def _as_int(value: Any) -> Optional[int]:
    number = _as_float(value)
    return int(number) if number is not None else None


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _weaknesses(analysis: Any) -> Tuple[str, ...]:
    if not isinstance(analysis, dict):
        return ()
    raw = analysis.get("weaknesses_or_gaps") or []
    if isinstance(raw, str):
        raw = [raw]
    return tuple(text for text in (_strip_or_none(item) for item in raw) if text)


def parse_enrichment(status: Any, data: Any) -> Optional[Enrichment]:
    if not status and not data:
        return None
    data = data if isinstance(data, dict) else {}
    return Enrichment(
        status=_strip_or_none(status),
        outreach_hook=_strip_or_none(data.get("outreach_hook")),
        weaknesses=_weaknesses(data.get("analysis")),
    )


def lead_from_row(row: Dict[str, Any]) -> Lead:
    """Build a :class:`Lead` from a ``leads`` table row or an equivalent JSON payload."""

    directory = DirectoryListing(
        verified=_as_bool(row.get("google_verified")),
        claimed=_as_bool(row.get("google_is_claimed")),
        permanently_closed=_as_bool(row.get("google_is_permanently_closed")),
        temporarily_closed=_as_bool(row.get("google_is_temporarily_closed")),
        hours_present=_as_bool(row.get("google_hours_present")),
        rating=_as_float(row.get("rating")),
        review_count=_as_int(row.get("review_count")),
    )
    lead_id = row.get("id")

    return Lead(
        id=str(lead_id) if lead_id is not None else None,
        name=_strip_or_none(row.get("business_name") or row.get("name")) or "",
        city=_strip_or_none(row.get("city")),
        website=_strip_or_none(row.get("website_url") or row.get("website")),
        directory=directory,
        enrichment=parse_enrichment(row.get("enrichment_status"), row.get("enrichment_data")),
    )


def scan_result_to_row(result: ScanResult, scanned_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Column values written to the ``leads`` table after a completed scan."""

    return {
        "scan_status": "done",
        "scan_score": result.score,
        "scan_reasons": list(result.reasons),
        "scan_missing": list(result.missing),
        "scan_recommended_angle": result.recommended_angle,
        "scan_confidence": result.confidence,
        "scan_findings_json": dict(result.findings),
        "scan_last_at": scanned_at or datetime.now(timezone.utc),
        "scan_error": result.error,
    }

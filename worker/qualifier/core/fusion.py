"""Adjust a page score with business-directory evidence."""

from __future__ import annotations

from typing import Optional

from qualifier.core.models import DirectoryListing

MIN_SCORE = 0
MAX_SCORE = 10

CLOSED_REASON = "Business is marked CLOSED on Google"

REVIEW_COUNT_SWEET_SPOT = (20, 200)
RATING_SWEET_SPOT = (3.8, 4.6)


def _within(value: Optional[float], bounds) -> bool:
    if value is None:
        return False
    low, high = bounds
    return low <= value <= high


def clamp_score(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, int(score)))


def directory_bonus(directory: DirectoryListing) -> int:
    """Points earned from the listing itself, before any closure override."""

    bonus = sum(1 for flag in (directory.verified, directory.claimed, directory.hours_present) if flag)
    if _within(directory.review_count, REVIEW_COUNT_SWEET_SPOT):
        bonus += 1
    if _within(directory.rating, RATING_SWEET_SPOT):
        bonus += 1
    return bonus


def fuse_score(page_score: int, directory: DirectoryListing) -> int:
    """Final score in ``[0, 10]``; a closed business always scores 0."""

    if directory.is_closed:
        return MIN_SCORE
    return clamp_score(page_score + directory_bonus(directory))

"""Pure scoring functions: tag similarity, popularity and time decay."""

import math
from collections.abc import Collection
from datetime import datetime, timezone

from feedwise.services.tuning import PopularityReference

SECONDS_PER_DAY = 86_400

_DEFAULT_REFERENCE = PopularityReference()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the content store records times."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def jaccard_similarity(a: Collection[int], b: Collection[int]) -> float:
    """Intersection over union of two tag sets. 0.0 if either is empty."""
    if not a or not b:
        return 0.0
    left, right = set(a), set(b)
    return len(left & right) / len(left | right)


def age_in_days(published_at: datetime, now: datetime | None = None) -> float:
    """Fractional days since publication. Future timestamps count as age 0."""
    reference = as_naive_utc(now) if now is not None else utcnow()
    delta = reference - as_naive_utc(published_at)
    return max(delta.total_seconds(), 0.0) / SECONDS_PER_DAY


def time_decay(
    published_at: datetime,
    rate: float = 0.1,
    now: datetime | None = None,
) -> float:
    """exp(-rate * age_days): 1.0 at age 0, tending towards (never reaching) 0."""
    return math.exp(-rate * age_in_days(published_at, now))


def _log_component(count: int, reference: float) -> float:
    return math.log1p(count) / math.log(reference)


def popularity_score(
    views: int,
    likes: int,
    comments: int,
    reference: PopularityReference = _DEFAULT_REFERENCE,
) -> float:
    """
    Log-compressed engagement score.

    Each counter is normalised against its reference "high" value before
    weighting (views 0.5, likes 0.3, comments 0.2). Reaching every reference
    scores about 1.0; larger counters keep growing logarithmically so heavily
    engaged items stay distinguishable.
    """
    if views < 0 or likes < 0 or comments < 0:
        raise ValueError("Engagement counters must be non-negative")

    return (
        _log_component(views, reference.views) * 0.5
        + _log_component(likes, reference.likes) * 0.3
        + _log_component(comments, reference.comments) * 0.2
    )

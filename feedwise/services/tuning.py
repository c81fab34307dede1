"""
Tunable constants for the recommendation engine.

The weights are a starting calibration, not a contract: every value can be
overridden through ``Settings`` and is passed into the services explicitly.
"""

from dataclasses import dataclass, field

from feedwise.config import Settings
from feedwise.domain.entities import InteractionKind, Strategy


@dataclass(frozen=True)
class PopularityReference:
    """Counter values treated as "high" when normalising engagement."""

    views: float = 10_000
    likes: float = 1_000
    comments: float = 100


@dataclass(frozen=True)
class RecommenderConfig:
    """
    Immutable engine configuration.

    Attributes:
        popularity:               Reference constants for the popularity scorer.
        decay_rate:               Exponential decay rate per day of content age.
        content_tag_weight:       Jaccard similarity weight (content-based).
        content_category_bonus:   Flat bonus for a matching category (content-based).
        content_popularity_weight: Popularity weight (content-based).
        content_pool_multiplier:  Candidate pool size as a multiple of the limit.
        content_tag_reason_threshold: Minimum similarity before tags are quoted as the reason.
        behavioral_*:             Same roles for the behavioral strategy.
        profile_*:                Event window, per-kind caps and top-N for preference profiles.
        interaction_weights:      Contribution of one event of each kind.
        trending_window_days:     Publish window for trending candidates.
        blend_weights:            Per-strategy multiplier applied before ranking.
        timeout_seconds:          Soft deadline for fetchers; None waits indefinitely.
    """

    popularity: PopularityReference = field(default_factory=PopularityReference)
    decay_rate: float = 0.1

    content_tag_weight: float = 0.6
    content_category_bonus: float = 0.3
    content_popularity_weight: float = 0.1
    content_pool_multiplier: int = 3
    content_tag_reason_threshold: float = 0.3

    behavioral_tag_weight: float = 0.1
    behavioral_category_weight: float = 0.15
    behavioral_popularity_weight: float = 0.2
    behavioral_pool_multiplier: int = 2

    profile_window_days: int = 30
    profile_max_views: int = 20
    profile_max_favorites: int = 10
    profile_max_likes: int = 10
    profile_top_tags: int = 5
    profile_top_categories: int = 3
    interaction_weights: dict[InteractionKind, float] = field(
        default_factory=lambda: {
            InteractionKind.VIEW: 1.0,
            InteractionKind.LIKE: 2.0,
            InteractionKind.FAVORITE: 3.0,
        }
    )

    trending_window_days: int = 7

    blend_weights: dict[Strategy, float] = field(
        default_factory=lambda: {strategy: 1.0 for strategy in Strategy}
    )
    timeout_seconds: float | None = 2.0

    def event_cap(self, kind: InteractionKind) -> int:
        return {
            InteractionKind.VIEW: self.profile_max_views,
            InteractionKind.FAVORITE: self.profile_max_favorites,
            InteractionKind.LIKE: self.profile_max_likes,
        }[kind]

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecommenderConfig":
        return cls(
            popularity=PopularityReference(
                views=settings.popularity_view_reference,
                likes=settings.popularity_like_reference,
                comments=settings.popularity_comment_reference,
            ),
            decay_rate=settings.decay_rate_per_day,
            content_tag_weight=settings.content_tag_weight,
            content_category_bonus=settings.content_category_bonus,
            content_popularity_weight=settings.content_popularity_weight,
            content_pool_multiplier=settings.content_pool_multiplier,
            content_tag_reason_threshold=settings.content_tag_reason_threshold,
            behavioral_tag_weight=settings.behavioral_tag_weight,
            behavioral_category_weight=settings.behavioral_category_weight,
            behavioral_popularity_weight=settings.behavioral_popularity_weight,
            behavioral_pool_multiplier=settings.behavioral_pool_multiplier,
            profile_window_days=settings.profile_window_days,
            profile_max_views=settings.profile_max_views,
            profile_max_favorites=settings.profile_max_favorites,
            profile_max_likes=settings.profile_max_likes,
            profile_top_tags=settings.profile_top_tags,
            profile_top_categories=settings.profile_top_categories,
            trending_window_days=settings.trending_window_days,
            blend_weights={
                Strategy.CONTENT_BASED: settings.blend_weight_content,
                Strategy.BEHAVIORAL: settings.blend_weight_behavioral,
                Strategy.TRENDING: settings.blend_weight_trending,
            },
            timeout_seconds=settings.recommendation_timeout_seconds,
        )

"""
Candidate fetchers, one per recommendation strategy.

Each fetcher is independent and side-effect free: it reads its own snapshot
from the repositories and returns a list of ``ScoredCandidate`` sorted by
descending strategy-local score.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from feedwise.domain.entities import ContentItem, PreferenceProfile, ScoredCandidate, Strategy
from feedwise.ports.repositories import ContentFilter, ContentOrdering, ContentRepositoryPort
from feedwise.services.preferences import InteractionAggregator
from feedwise.services.scoring import jaccard_similarity, popularity_score, time_decay, utcnow
from feedwise.services.tuning import RecommenderConfig

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def sort_candidates(candidates: Iterable[ScoredCandidate]) -> list[ScoredCandidate]:
    """Score descending, then content id ascending."""
    return sorted(candidates, key=lambda c: (-c.score, c.content_id))


class CandidateFetcher:
    """Shared plumbing for the strategy fetchers."""

    strategy: Strategy

    def __init__(
        self,
        content: ContentRepositoryPort,
        config: RecommenderConfig,
        clock: Clock = utcnow,
    ) -> None:
        self._content = content
        self._config = config
        self._clock = clock

    def _popularity(self, item: ContentItem) -> float:
        return popularity_score(
            item.views, item.likes, item.comments, self._config.popularity
        )

    def _decay(self, item: ContentItem, now: datetime) -> float:
        return time_decay(item.published_at, self._config.decay_rate, now)

    def _candidate(self, item: ContentItem, score: float, reason: str) -> ScoredCandidate:
        return ScoredCandidate(item=item, score=score, reason=reason, strategy=self.strategy)


class ContentBasedFetcher(CandidateFetcher):
    """Items sharing tags or category with a reference post."""

    strategy = Strategy.CONTENT_BASED

    def score(self, reference: ContentItem, candidate: ContentItem, now: datetime) -> float:
        similarity = jaccard_similarity(reference.tag_ids, candidate.tag_ids)
        same_category = (
            reference.category_id is not None
            and candidate.category_id == reference.category_id
        )
        raw = (
            similarity * self._config.content_tag_weight
            + (self._config.content_category_bonus if same_category else 0.0)
            + self._popularity(candidate) * self._config.content_popularity_weight
        )
        return raw * self._decay(candidate, now)

    def reason(self, reference: ContentItem, candidate: ContentItem) -> str:
        if (
            reference.category_id is not None
            and candidate.category_id == reference.category_id
            and candidate.category is not None
        ):
            return f"same category: {candidate.category.name}"

        similarity = jaccard_similarity(reference.tag_ids, candidate.tag_ids)
        if similarity > self._config.content_tag_reason_threshold:
            shared = candidate.tag_names(reference.tag_ids)[:2]
            return f"similar tags: {', '.join(shared)}"
        return "related content"

    async def fetch(
        self,
        reference_id: int,
        limit: int,
        exclude_ids: frozenset[int] = frozenset(),
    ) -> list[ScoredCandidate]:
        reference = await self._content.find_by_id(reference_id)
        if reference is None:
            logger.info("Reference content %s not found; no related items", reference_id)
            return []

        pool = await self._content.find_published(
            ContentFilter(ordering=ContentOrdering.RECENT),
            exclude_ids | {reference_id},
            limit * self._config.content_pool_multiplier,
        )
        now = self._clock()
        scored = [
            self._candidate(item, self.score(reference, item, now), self.reason(reference, item))
            for item in pool
        ]
        return sort_candidates(scored)[:limit]


class BehavioralFetcher(CandidateFetcher):
    """Items matching the viewer's recent tag and category preferences."""

    strategy = Strategy.BEHAVIORAL

    def __init__(
        self,
        content: ContentRepositoryPort,
        aggregator: InteractionAggregator,
        config: RecommenderConfig,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(content, config, clock)
        self._aggregator = aggregator

    def score(self, profile: PreferenceProfile, candidate: ContentItem, now: datetime) -> float:
        tag_affinity = sum(
            profile.tag_weights[tag_id] for tag_id in candidate.tag_ids & profile.tag_ids
        )
        category_affinity = profile.category_weights.get(candidate.category_id, 0.0)
        raw = (
            tag_affinity * self._config.behavioral_tag_weight
            + category_affinity * self._config.behavioral_category_weight
            + self._popularity(candidate) * self._config.behavioral_popularity_weight
        )
        return raw * self._decay(candidate, now)

    @staticmethod
    def reason(profile: PreferenceProfile, candidate: ContentItem) -> str:
        if candidate.category is not None and candidate.category_id in profile.category_ids:
            return f"because you like {candidate.category.name}"
        matched = candidate.tag_names(profile.tag_ids)[:2]
        if matched:
            return f"matches your interests: {', '.join(matched)}"
        return "picked for you"

    async def fetch(
        self,
        viewer_id: int,
        limit: int,
        exclude_ids: frozenset[int] = frozenset(),
    ) -> list[ScoredCandidate]:
        profile = await self._aggregator.build_profile(viewer_id)
        if profile.is_empty:
            logger.debug("Viewer %s has no recent interactions", viewer_id)
            return []

        pool = await self._content.find_published(
            ContentFilter(
                tag_ids=profile.tag_ids,
                category_ids=profile.category_ids,
                ordering=ContentOrdering.RECENT,
            ),
            exclude_ids,
            limit * self._config.behavioral_pool_multiplier,
        )
        now = self._clock()
        scored = [
            self._candidate(item, self.score(profile, item, now), self.reason(profile, item))
            for item in pool
        ]
        return sort_candidates(scored)[:limit]


class TrendingFetcher(CandidateFetcher):
    """Recently published items ranked by raw engagement. No personalisation."""

    strategy = Strategy.TRENDING

    async def fetch(
        self,
        limit: int,
        exclude_ids: frozenset[int] = frozenset(),
    ) -> list[ScoredCandidate]:
        since = self._clock() - timedelta(days=self._config.trending_window_days)
        items = await self._content.find_published(
            ContentFilter(published_after=since, ordering=ContentOrdering.POPULAR),
            exclude_ids,
            limit,
        )
        # Repository ordering (views, likes, recency) is kept; score is popularity only.
        return [
            self._candidate(item, self._popularity(item), "trending this week")
            for item in items
        ]

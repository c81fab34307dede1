"""
Blending recommendation engine.

One request walks Dispatch -> Await -> Merge -> Rank -> Truncate -> Done:

- Dispatch launches the applicable fetchers as concurrent tasks. A strategy
  whose input is missing (no reference id, no viewer id) is not dispatched.
- Await joins them under an optional soft deadline. Fetchers still running at
  the deadline are cancelled and the request continues with whatever has
  completed. A fetcher that raises is logged and contributes nothing; only
  when no fetcher succeeds and at least one raised does the request fail.
- Merge/Rank/Truncate apply per-strategy weights, keep the best nomination per
  content id, drop excluded ids and cut to the requested limit.
- Done hands the result to the audit logger without awaiting it.
"""

import asyncio
import logging
import math
from collections.abc import Coroutine, Iterable
from dataclasses import replace
from typing import Any

from feedwise.domain.entities import (
    RecommendationMode,
    RecommendationRequest,
    RecommendationResult,
    ScoredCandidate,
    Strategy,
)
from feedwise.errors import RecommendationUnavailableError
from feedwise.ports.recommender import RecommenderPort
from feedwise.ports.repositories import ContentRepositoryPort, InteractionRepositoryPort
from feedwise.services.audit import AuditLogger
from feedwise.services.preferences import InteractionAggregator
from feedwise.services.scoring import utcnow
from feedwise.services.strategies import (
    BehavioralFetcher,
    Clock,
    ContentBasedFetcher,
    TrendingFetcher,
    sort_candidates,
)
from feedwise.services.tuning import RecommenderConfig

logger = logging.getLogger(__name__)

FetchJob = Coroutine[Any, Any, list[ScoredCandidate]]


def rank_candidates(
    candidates: Iterable[ScoredCandidate],
    exclude_ids: frozenset[int] = frozenset(),
) -> list[ScoredCandidate]:
    """Deduplicate by content id keeping the highest score, then sort."""
    best: dict[int, ScoredCandidate] = {}
    for candidate in candidates:
        if candidate.content_id in exclude_ids:
            continue
        current = best.get(candidate.content_id)
        if current is None or candidate.score > current.score:
            best[candidate.content_id] = candidate
    return sort_candidates(best.values())


class RecommendationEngine(RecommenderPort):
    """Runs the strategy fetchers concurrently and blends their output."""

    def __init__(
        self,
        content_based: ContentBasedFetcher,
        behavioral: BehavioralFetcher,
        trending: TrendingFetcher,
        config: RecommenderConfig,
        audit: AuditLogger | None = None,
    ) -> None:
        self._content_based = content_based
        self._behavioral = behavioral
        self._trending = trending
        self._config = config
        self._audit = audit

    @classmethod
    def build(
        cls,
        content: ContentRepositoryPort,
        interactions: InteractionRepositoryPort,
        config: RecommenderConfig | None = None,
        audit: AuditLogger | None = None,
        clock: Clock = utcnow,
    ) -> "RecommendationEngine":
        """Wire the fetchers from repository ports."""
        config = config or RecommenderConfig()
        aggregator = InteractionAggregator(content, interactions, config)
        return cls(
            content_based=ContentBasedFetcher(content, config, clock),
            behavioral=BehavioralFetcher(content, aggregator, config, clock),
            trending=TrendingFetcher(content, config, clock),
            config=config,
            audit=audit,
        )

    # ── Dispatch ───────────────────────────────────

    def plan(
        self, request: RecommendationRequest, exclude_ids: frozenset[int]
    ) -> dict[Strategy, FetchJob]:
        """Map each applicable strategy to its (not yet started) fetch coroutine."""
        mode = request.mode
        limit = request.limit
        jobs: dict[Strategy, FetchJob] = {}

        if mode is RecommendationMode.HYBRID:
            personal_limit = math.ceil(limit / 2)
            trending_limit = math.ceil(limit / 3)
        else:
            personal_limit = trending_limit = limit

        if mode in (RecommendationMode.CONTENT, RecommendationMode.HYBRID):
            if request.reference_id is not None:
                jobs[Strategy.CONTENT_BASED] = self._content_based.fetch(
                    request.reference_id, personal_limit, exclude_ids
                )
        if mode in (RecommendationMode.BEHAVIORAL, RecommendationMode.HYBRID):
            if request.viewer_id is not None:
                jobs[Strategy.BEHAVIORAL] = self._behavioral.fetch(
                    request.viewer_id, personal_limit, exclude_ids
                )
        if mode in (RecommendationMode.TRENDING, RecommendationMode.HYBRID):
            jobs[Strategy.TRENDING] = self._trending.fetch(trending_limit, exclude_ids)

        return jobs

    # ── Await ──────────────────────────────────────

    async def _gather(
        self, jobs: dict[Strategy, FetchJob]
    ) -> tuple[list[list[ScoredCandidate]], list[Strategy]]:
        tasks = {
            asyncio.create_task(job, name=f"fetch-{strategy.value}"): strategy
            for strategy, job in jobs.items()
        }
        try:
            done, pending = await asyncio.wait(
                tasks, timeout=self._config.timeout_seconds
            )
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        batches: list[list[ScoredCandidate]] = []
        incomplete: list[Strategy] = []
        errors: list[BaseException] = []

        for task in pending:
            strategy = tasks[task]
            incomplete.append(strategy)
            logger.warning(
                "Strategy %s missed the %.2fs deadline; returning partial results",
                strategy.value,
                self._config.timeout_seconds,
            )
        for task in done:
            strategy = tasks[task]
            exc = task.exception()
            if exc is not None:
                incomplete.append(strategy)
                errors.append(exc)
                logger.error(
                    "Strategy %s failed: %s", strategy.value, exc, exc_info=exc
                )
                continue
            batches.append(task.result())

        if errors and not batches:
            raise RecommendationUnavailableError() from errors[0]

        return batches, incomplete

    # ── Request ────────────────────────────────────

    def _weighted(self, candidate: ScoredCandidate) -> ScoredCandidate:
        weight = self._config.blend_weights.get(candidate.strategy, 1.0)
        if weight == 1.0:
            return candidate
        return replace(candidate, score=candidate.score * weight)

    async def recommend(self, request: RecommendationRequest) -> RecommendationResult:
        exclude_ids = request.exclude_ids
        if request.reference_id is not None:
            exclude_ids = exclude_ids | {request.reference_id}

        jobs = self.plan(request, exclude_ids)
        if not jobs:
            logger.info("No strategy applicable for mode=%s", request.mode.value)
            return RecommendationResult()

        logger.debug(
            "Dispatching %s (limit=%d)",
            ", ".join(s.value for s in jobs),
            request.limit,
        )
        batches, incomplete = await self._gather(jobs)

        merged = [self._weighted(c) for batch in batches for c in batch]
        ranked = rank_candidates(merged, exclude_ids)
        result = RecommendationResult(
            candidates=ranked[: request.limit],
            incomplete=sorted(incomplete, key=lambda s: s.value),
        )

        logger.info(
            "Recommended %d items (mode=%s, algorithms=%s)",
            len(result),
            request.mode.value,
            ",".join(result.algorithms) or "-",
        )
        if self._audit is not None:
            self._audit.submit(request.viewer_id, result.candidates)
        return result

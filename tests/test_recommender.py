"""Tests for the blending engine: dispatch, isolation, ranking and audit."""

import asyncio
import math

import pytest

from feedwise.domain.entities import (
    InteractionKind,
    RecommendationMode,
    RecommendationRequest,
    ScoredCandidate,
    Strategy,
)
from feedwise.errors import RecommendationUnavailableError
from feedwise.services.recommender import RecommendationEngine, rank_candidates
from feedwise.services.tuning import RecommenderConfig


class StubFetcher:
    """Stands in for a strategy fetcher and records how it was called."""

    def __init__(self, results=(), delay: float = 0.0, error: Exception | None = None):
        self.results = list(results)
        self.delay = delay
        self.error = error
        self.calls: list[tuple] = []

    async def fetch(self, *args):
        self.calls.append(args)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.results)


def _candidate(item, score, strategy=Strategy.TRENDING, reason="r"):
    return ScoredCandidate(item=item, score=score, reason=reason, strategy=strategy)


def _stub_engine(content=None, behavioral=None, trending=None, audit=None, **config):
    return RecommendationEngine(
        content_based=content or StubFetcher(),
        behavioral=behavioral or StubFetcher(),
        trending=trending or StubFetcher(),
        config=RecommenderConfig(**config),
        audit=audit,
    )


# ── Ranking ────────────────────────────────────────


def test_rank_keeps_highest_nomination_per_id(make_item):
    a, b = make_item(1), make_item(2)
    ranked = rank_candidates(
        [
            _candidate(a, 0.2, Strategy.TRENDING),
            _candidate(b, 0.5, Strategy.BEHAVIORAL),
            _candidate(a, 0.9, Strategy.CONTENT_BASED),
            _candidate(b, 0.1, Strategy.TRENDING),
        ]
    )
    assert [(c.content_id, c.score, c.strategy) for c in ranked] == [
        (1, 0.9, Strategy.CONTENT_BASED),
        (2, 0.5, Strategy.BEHAVIORAL),
    ]


def test_rank_breaks_ties_on_content_id(make_item):
    ranked = rank_candidates(
        [_candidate(make_item(i), 0.5) for i in (9, 3, 5)]
    )
    assert [c.content_id for c in ranked] == [3, 5, 9]


def test_rank_is_idempotent(make_item):
    once = rank_candidates(
        [_candidate(make_item(1), 0.3), _candidate(make_item(1), 0.4)]
    )
    assert rank_candidates(once) == once


def test_rank_drops_excluded(make_item):
    ranked = rank_candidates(
        [_candidate(make_item(1), 0.3), _candidate(make_item(2), 0.4)],
        exclude_ids=frozenset({2}),
    )
    assert [c.content_id for c in ranked] == [1]


# ── Dispatch ───────────────────────────────────────


async def test_hybrid_without_ids_runs_trending_only(content_repo, interaction_repo, make_item, clock):
    for i in range(1, 9):
        content_repo.add(make_item(i, views=i * 10, days_old=1))
    engine = RecommendationEngine.build(content_repo, interaction_repo, clock=clock)

    result = await engine.recommend(RecommendationRequest(limit=10))

    assert len(result) == math.ceil(10 / 3)
    assert result.algorithms == ["trending"]


async def test_trending_keeps_engagement_order_above_reference_counts(
    content_repo, interaction_repo, make_item, clock
):
    content_repo.add(make_item(1, views=20_000, likes=2_000, comments=200, days_old=1))
    content_repo.add(make_item(2, views=90_000, likes=9_000, comments=900, days_old=1))
    content_repo.add(make_item(3, views=500_000, likes=50_000, comments=5_000, days_old=1))
    engine = RecommendationEngine.build(content_repo, interaction_repo, clock=clock)

    result = await engine.recommend(
        RecommendationRequest(mode=RecommendationMode.TRENDING, limit=3)
    )

    assert [c.content_id for c in result.candidates] == [3, 2, 1]
    scores = [c.score for c in result.candidates]
    assert scores[0] > scores[1] > scores[2]


async def test_hybrid_limits_per_strategy(make_item):
    content, behavioral, trending = StubFetcher(), StubFetcher(), StubFetcher()
    engine = _stub_engine(content, behavioral, trending)

    await engine.recommend(
        RecommendationRequest(reference_id=1, viewer_id=2, limit=7, exclude_ids=frozenset({9}))
    )

    assert content.calls == [(1, 4, frozenset({1, 9}))]
    assert behavioral.calls == [(2, 4, frozenset({1, 9}))]
    assert trending.calls == [(3, frozenset({1, 9}))]


@pytest.mark.parametrize(
    "mode, expected",
    [
        (RecommendationMode.CONTENT, {"content"}),
        (RecommendationMode.BEHAVIORAL, {"behavioral"}),
        (RecommendationMode.TRENDING, {"trending"}),
        (RecommendationMode.HYBRID, {"content", "behavioral", "trending"}),
    ],
)
async def test_mode_selects_strategies(mode, expected):
    stubs = {"content": StubFetcher(), "behavioral": StubFetcher(), "trending": StubFetcher()}
    engine = _stub_engine(stubs["content"], stubs["behavioral"], stubs["trending"])

    await engine.recommend(RecommendationRequest(reference_id=1, viewer_id=2, mode=mode, limit=5))

    called = {name for name, stub in stubs.items() if stub.calls}
    assert called == expected


async def test_content_mode_without_reference_is_empty_not_error():
    content = StubFetcher()
    engine = _stub_engine(content=content)

    result = await engine.recommend(RecommendationRequest(mode=RecommendationMode.CONTENT))

    assert result.candidates == []
    assert content.calls == []


async def test_behavioral_without_history_falls_back_to_trending(
    content_repo, interaction_repo, make_item, clock
):
    content_repo.add(make_item(1, tags=[1], views=10, days_old=1))
    content_repo.add(make_item(2, tags=[1], views=20, days_old=2))
    engine = RecommendationEngine.build(content_repo, interaction_repo, clock=clock)

    result = await engine.recommend(RecommendationRequest(viewer_id=5, limit=6))

    assert result.algorithms == ["trending"]
    assert [c.content_id for c in result.candidates] == [2, 1]


# ── Blending ───────────────────────────────────────


async def test_result_respects_limit_dedup_and_exclusions(
    content_repo, interaction_repo, make_item, make_event, clock
):
    content_repo.add(make_item(1, tags=[1, 2], category=1, views=5))
    for i in range(2, 15):
        content_repo.add(
            make_item(i, tags=[1 + i % 3], category=1 + i % 2, views=i * 7, days_old=i % 6)
        )
    interaction_repo.add(make_event(3, 4, InteractionKind.FAVORITE))
    interaction_repo.add(make_event(3, 5, InteractionKind.VIEW))
    engine = RecommendationEngine.build(content_repo, interaction_repo, clock=clock)

    request = RecommendationRequest(
        reference_id=1, viewer_id=3, limit=5, exclude_ids=frozenset({2, 6})
    )
    result = await engine.recommend(request)
    ids = [c.content_id for c in result.candidates]

    assert len(ids) <= 5
    assert len(ids) == len(set(ids))
    assert not set(ids) & {1, 2, 6}
    scores = [c.score for c in result.candidates]
    assert scores == sorted(scores, reverse=True)


async def test_duplicate_nominations_keep_best_strategy(make_item):
    item = make_item(1)
    engine = _stub_engine(
        content=StubFetcher([_candidate(item, 0.8, Strategy.CONTENT_BASED)]),
        trending=StubFetcher([_candidate(item, 0.3, Strategy.TRENDING)]),
    )
    result = await engine.recommend(RecommendationRequest(reference_id=99, limit=5))

    assert len(result) == 1
    assert result.candidates[0].strategy is Strategy.CONTENT_BASED
    assert result.algorithms == ["content-based"]


async def test_blend_weights_rescale_strategies(make_item):
    engine = _stub_engine(
        content=StubFetcher([_candidate(make_item(1), 0.5, Strategy.CONTENT_BASED)]),
        trending=StubFetcher([_candidate(make_item(2), 0.4, Strategy.TRENDING)]),
        blend_weights={Strategy.CONTENT_BASED: 0.5, Strategy.TRENDING: 1.0},
    )
    result = await engine.recommend(RecommendationRequest(reference_id=99, limit=5))

    assert [c.content_id for c in result.candidates] == [2, 1]
    assert result.candidates[1].score == pytest.approx(0.25)


# ── Failure isolation and deadlines ────────────────


async def test_failing_fetcher_does_not_abort_others(make_item):
    engine = _stub_engine(
        content=StubFetcher(error=RuntimeError("db down")),
        trending=StubFetcher([_candidate(make_item(1), 0.4)]),
    )
    result = await engine.recommend(RecommendationRequest(reference_id=99, limit=5))

    assert [c.content_id for c in result.candidates] == [1]
    assert result.incomplete == [Strategy.CONTENT_BASED]


async def test_all_fetchers_failing_raises():
    engine = _stub_engine(
        content=StubFetcher(error=RuntimeError("db down")),
        trending=StubFetcher(error=RuntimeError("db down")),
    )
    with pytest.raises(RecommendationUnavailableError):
        await engine.recommend(RecommendationRequest(reference_id=99, limit=5))


async def test_slow_fetcher_is_cut_at_deadline(make_item):
    slow = StubFetcher([_candidate(make_item(1), 0.9, Strategy.BEHAVIORAL)], delay=5)
    engine = _stub_engine(
        behavioral=slow,
        trending=StubFetcher([_candidate(make_item(2), 0.1)]),
        timeout_seconds=0.05,
    )
    result = await engine.recommend(RecommendationRequest(viewer_id=3, limit=5))

    assert [c.content_id for c in result.candidates] == [2]
    assert result.incomplete == [Strategy.BEHAVIORAL]


class HangingFetcher:
    """Blocks until cancelled and remembers that it was."""

    def __init__(self):
        self.started = asyncio.Event()
        self.cancelled = False

    async def fetch(self, *args):
        self.started.set()
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return []


async def test_cancelled_request_reaps_running_fetchers():
    hanging = HangingFetcher()
    engine = _stub_engine(trending=hanging, timeout_seconds=None)

    request = asyncio.create_task(engine.recommend(RecommendationRequest(limit=5)))
    await hanging.started.wait()
    request.cancel()
    with pytest.raises(asyncio.CancelledError):
        await request

    assert hanging.cancelled
    assert not [
        t for t in asyncio.all_tasks() if t.get_name().startswith("fetch-") and not t.done()
    ]


async def test_no_deadline_waits_for_all(make_item):
    engine = _stub_engine(
        behavioral=StubFetcher([_candidate(make_item(1), 0.9, Strategy.BEHAVIORAL)], delay=0.05),
        trending=StubFetcher([_candidate(make_item(2), 0.1)]),
        timeout_seconds=None,
    )
    result = await engine.recommend(RecommendationRequest(viewer_id=3, limit=5))
    assert [c.content_id for c in result.candidates] == [1, 2]


# ── Audit ──────────────────────────────────────────


async def test_result_is_submitted_to_audit(make_item, audit, sink):
    engine = _stub_engine(
        trending=StubFetcher([_candidate(make_item(1), 0.4), _candidate(make_item(2), 0.2)]),
        audit=audit,
    )
    await engine.recommend(RecommendationRequest(viewer_id=8, limit=5))
    await audit.flush()

    assert [(e.viewer_id, e.content_id, e.strategy) for e in sink.entries] == [
        (8, 1, Strategy.TRENDING),
        (8, 2, Strategy.TRENDING),
    ]


async def test_audit_failure_never_reaches_caller(make_item, audit, sink):
    sink.fail_next = 1
    engine = _stub_engine(trending=StubFetcher([_candidate(make_item(1), 0.4)]), audit=audit)

    result = await engine.recommend(RecommendationRequest(limit=5))
    await audit.flush()

    assert len(result) == 1
    assert sink.entries == []

"""Builds a viewer's preference profile from recent interaction history."""

import asyncio
import logging
from collections import defaultdict

from feedwise.domain.entities import InteractionEvent, InteractionKind, PreferenceProfile
from feedwise.ports.repositories import ContentRepositoryPort, InteractionRepositoryPort
from feedwise.services.tuning import RecommenderConfig

logger = logging.getLogger(__name__)


def _top_weights(weights: dict[int, float], n: int) -> dict[int, float]:
    """Highest ``n`` entries by weight; ties resolved towards the lower id."""
    ranked = sorted(weights.items(), key=lambda kv: (-kv[1], kv[0]))
    return dict(ranked[:n])


class InteractionAggregator:
    """Reduces view, like and favorite events to tag and category weights."""

    def __init__(
        self,
        content: ContentRepositoryPort,
        interactions: InteractionRepositoryPort,
        config: RecommenderConfig,
    ) -> None:
        self._content = content
        self._interactions = interactions
        self._config = config

    async def _load_events(self, viewer_id: int) -> list[InteractionEvent]:
        kinds = (InteractionKind.VIEW, InteractionKind.FAVORITE, InteractionKind.LIKE)
        batches = await asyncio.gather(
            *(
                self._interactions.recent_events(
                    viewer_id,
                    kind,
                    self._config.profile_window_days,
                    self._config.event_cap(kind),
                )
                for kind in kinds
            )
        )
        return [event for batch in batches for event in batch]

    async def build_profile(self, viewer_id: int) -> PreferenceProfile:
        """
        Aggregate the viewer's recent events into a preference profile.

        Returns an empty profile when the viewer has no usable history; the
        behavioral strategy treats that as "unavailable", not as an error.
        """
        events = await self._load_events(viewer_id)
        if not events:
            return PreferenceProfile()

        items = await self._content.find_by_ids({e.content_id for e in events})

        tag_weights: dict[int, float] = defaultdict(float)
        category_weights: dict[int, float] = defaultdict(float)
        skipped = 0

        for event in events:
            item = items.get(event.content_id)
            if item is None:
                skipped += 1
                continue
            weight = self._config.interaction_weights[event.kind]
            for tag_id in item.tag_ids:
                tag_weights[tag_id] += weight
            if item.category_id is not None:
                category_weights[item.category_id] += weight

        if skipped:
            logger.debug(
                "Viewer %s: skipped %d events referencing missing content",
                viewer_id,
                skipped,
            )

        return PreferenceProfile(
            tag_weights=_top_weights(tag_weights, self._config.profile_top_tags),
            category_weights=_top_weights(
                category_weights, self._config.profile_top_categories
            ),
        )

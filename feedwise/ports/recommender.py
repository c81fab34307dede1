"""Recommender port — abstract interface for the recommendation engine."""

from abc import ABC, abstractmethod

from feedwise.domain.entities import RecommendationRequest, RecommendationResult


class RecommenderPort(ABC):
    """Abstraction for the content recommendation engine."""

    @abstractmethod
    async def recommend(self, request: RecommendationRequest) -> RecommendationResult:
        """Return ranked, deduplicated recommendations for a request."""
        ...

"""Recommendation routes."""

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError

from feedwise.api.dependencies import get_recommender
from feedwise.api.errors import validation_details
from feedwise.api.schemas import (
    QueryEcho,
    RecommendationItem,
    RecommendationQuery,
    RecommendationsData,
    RecommendationsResponse,
)
from feedwise.errors import InvalidRequestError
from feedwise.ports.recommender import RecommenderPort

router = APIRouter(tags=["Recommendations"])


def parse_query(
    reference_id: str | None = Query(None, description="Post the viewer is reading"),
    viewer_id: str | None = Query(None, description="Viewer to personalise for"),
    mode: str | None = Query(None, description="content, behavioral, trending or hybrid"),
    limit: str | None = Query(None, description="Result size, clamped to [1, 20]"),
    exclude_ids: str | None = Query(None, description="Comma-separated post ids"),
) -> RecommendationQuery:
    """Validate raw query strings before anything reaches the engine."""
    raw = {
        "reference_id": reference_id,
        "viewer_id": viewer_id,
        "mode": mode,
        "limit": limit,
        "exclude_ids": exclude_ids,
    }
    try:
        return RecommendationQuery.model_validate(
            {key: value for key, value in raw.items() if value not in (None, "")}
        )
    except ValidationError as exc:
        raise InvalidRequestError(
            "Invalid recommendation parameters", validation_details(exc)
        ) from exc


@router.get("/recommendations", response_model=RecommendationsResponse)
async def get_recommendations(
    query: RecommendationQuery = Depends(parse_query),
    recommender: RecommenderPort = Depends(get_recommender),
) -> RecommendationsResponse:
    """Ranked content suggestions blended from the requested strategies."""
    result = await recommender.recommend(query.to_request())
    items = [RecommendationItem.from_candidate(c) for c in result.candidates]

    return RecommendationsResponse(
        data=RecommendationsData(
            recommendations=items,
            total=len(items),
            query=QueryEcho(
                mode=query.mode,
                reference_id=query.reference_id,
                viewer_id=query.viewer_id,
                limit=query.limit,
                exclude_ids=sorted(query.exclude_ids),
            ),
            algorithms=result.algorithms,
        )
    )

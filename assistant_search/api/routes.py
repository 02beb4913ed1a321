"""API routes for knowledge search."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from assistant_search.cache.semantic import SemanticCacheStats
from assistant_search.embeddings.models import CostEstimate, EmbeddingStats
from assistant_search.exceptions import ConfigurationError
from assistant_search.logging_config import get_logger
from assistant_search.retrieval.context import format_context
from assistant_search.retrieval.models import SearchResult
from assistant_search.services import SearchServices

logger = get_logger(__name__)


# Create router
router = APIRouter(prefix="/api/v1", tags=["Search"])


def get_services(request: Request) -> SearchServices:
    """The service container built by the application lifespan."""
    services: SearchServices | None = getattr(request.app.state, "services", None)
    if services is None:
        logger.warning("Search services not initialized - rejecting request")
        raise ConfigurationError("Search services are not initialized")
    return services


class SearchRequest(BaseModel):
    """Request body for a knowledge search."""

    query: str = Field(min_length=1, max_length=1000, description="User question")
    assistant_id: str = Field(min_length=1, description="Assistant to search")
    limit: int | None = Field(
        default=None,
        ge=1,
        le=50,
        description="Maximum results (server default when omitted)",
    )
    threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum relevance score",
    )


class SearchResponse(BaseModel):
    """Search results with formatted grounding context."""

    success: bool = Field(default=True)
    results: list[SearchResult] = Field(description="Ranked results")
    context: str = Field(description="Results formatted for the chat prompt")
    count: int = Field(description="Number of results")


class SearchListResponse(BaseModel):
    """Search results without context."""

    success: bool = Field(default=True)
    results: list[SearchResult] = Field(description="Ranked results")
    count: int = Field(description="Number of results")


class StatsResponse(BaseModel):
    """Cache and embedding usage counters."""

    embeddings: EmbeddingStats
    cost: CostEstimate
    semantic_cache: SemanticCacheStats
    expansion_cache_size: int


ServicesDep = Annotated[SearchServices, Depends(get_services)]


@router.post("/search", response_model=SearchResponse)
async def search_endpoint(request: SearchRequest, services: ServicesDep) -> SearchResponse:
    """Search the assistant's knowledge and format it for the chat prompt."""
    results = await services.search.search_relevant_context(
        request.query,
        request.assistant_id,
        limit=request.limit,
        threshold=request.threshold,
    )
    return SearchResponse(
        results=results,
        context=format_context(results),
        count=len(results),
    )


@router.get("/search", response_model=SearchListResponse)
async def search_get_endpoint(
    services: ServicesDep,
    query: Annotated[str, Query(min_length=1, max_length=1000)],
    assistant_id: Annotated[str, Query(min_length=1)],
    limit: Annotated[int | None, Query(ge=1, le=50)] = None,
    threshold: Annotated[float, Query(ge=0.0, le=1.0)] = 0.7,
) -> SearchListResponse:
    """Search via query parameters."""
    results = await services.search.search_relevant_context(
        query,
        assistant_id,
        limit=limit,
        threshold=threshold,
    )
    return SearchListResponse(results=results, count=len(results))


@router.get("/search/stats", response_model=StatsResponse)
async def stats_endpoint(services: ServicesDep) -> StatsResponse:
    """Embedding and cache counters since startup."""
    return StatsResponse(
        embeddings=services.embeddings.stats(),
        cost=services.embeddings.estimate_cost_savings(),
        semantic_cache=services.semantic_cache.stats(),
        expansion_cache_size=len(services.expander),
    )

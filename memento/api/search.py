"""
Search API endpoints for Memento.
Hybrid RRF, vector-only and text-in semantic search.
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from memento.api.dependencies import get_search_orchestrator
from memento.config import settings
from memento.engine.search import SearchOrchestrator
from memento.models.search import (
    HybridSearchRequest,
    SearchResult,
    SemanticSearchRequest,
    VectorSearchRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["Search"])


def _require_embedder(orchestrator: SearchOrchestrator):
    if orchestrator.embedder is None:
        raise HTTPException(status_code=503, detail="No embedding provider configured")


def _check_dimension(orchestrator: SearchOrchestrator, vector: List[float]):
    """A caller-supplied vector must match the index dimension."""
    expected = orchestrator.dimension
    if expected is not None and len(vector) != expected:
        raise HTTPException(
            status_code=422,
            detail=f"vector has {len(vector)} dimensions, expected {expected}"
        )


async def _query_vector(
    orchestrator: SearchOrchestrator,
    query: Optional[str],
    vector: Optional[List[float]]
) -> List[float]:
    if vector is not None:
        return vector
    return await orchestrator.embed_query(query)


@router.post("/hybrid", response_model=SearchResult, response_model_by_alias=True)
async def hybrid_search(
    request: HybridSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator)
) -> SearchResult:
    """
    Hybrid search fusing vector similarity and keyword matches with
    Reciprocal Rank Fusion.

    ```
    fused(id) = sum over lists of 1 / (k + position + 1)
    ```

    Entities found by both rankers outrank entities found by one.
    The query embedding is generated from ``query`` unless ``vector`` is given.
    """
    if request.vector is None:
        _require_embedder(orchestrator)
    else:
        _check_dimension(orchestrator, request.vector)

    async def run() -> SearchResult:
        vector = await _query_vector(orchestrator, request.query, request.vector)
        return await orchestrator.hybrid_search(vector, request.query, request.to_options())

    return await asyncio.wait_for(run(), timeout=settings.search_timeout)


@router.post("/vector", response_model=SearchResult, response_model_by_alias=True)
async def vector_search(
    request: VectorSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator)
) -> SearchResult:
    """
    Pure vector similarity search. ``minSimilarity`` is a hard floor.
    """
    if request.vector is None:
        _require_embedder(orchestrator)
    else:
        _check_dimension(orchestrator, request.vector)

    async def run() -> SearchResult:
        vector = await _query_vector(orchestrator, request.query, request.vector)
        return await orchestrator.vector_only_search(vector, request.to_options())

    return await asyncio.wait_for(run(), timeout=settings.search_timeout)


@router.post("/semantic", response_model=SearchResult, response_model_by_alias=True)
async def semantic_search(
    request: SemanticSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator)
) -> SearchResult:
    """
    Text-in search. Hybrid by default; set ``hybridSearch`` to false for
    vector-only. ``timeTaken`` includes embedding the query.
    """
    _require_embedder(orchestrator)
    return await asyncio.wait_for(
        orchestrator.semantic_search(
            request.query,
            limit=request.limit,
            min_similarity=request.min_similarity,
            hybrid=request.hybrid_search,
            rrf_k=settings.default_rrf_k
        ),
        timeout=settings.search_timeout
    )

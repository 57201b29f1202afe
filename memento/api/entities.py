"""
Entity and relation API endpoints for Memento.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from memento.api.dependencies import get_graph_writer, get_search_orchestrator
from memento.engine.graph_writer import GraphWriter
from memento.engine.search import SearchOrchestrator
from memento.models.entity import (
    CreateEntitiesRequest,
    CreateRelationsRequest,
    DeleteEntitiesRequest,
    DeleteEntitiesResponse,
    EntityWriteResult,
    GraphPayload,
    OpenNodesRequest,
    RelationWriteResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Entities"])


@router.post("/entities", response_model=List[EntityWriteResult], response_model_by_alias=True)
async def create_entities(
    request: CreateEntitiesRequest,
    writer: GraphWriter = Depends(get_graph_writer)
) -> List[EntityWriteResult]:
    """
    Create or update entities (max 50 per call).

    Each entity is embedded from its name, type and observations before it
    is stored. Per-entity failures are reported in ``error``.
    """
    if writer.embedder is None:
        raise HTTPException(status_code=503, detail="No embedding provider configured")
    return await writer.create_entities(request.entities)


@router.post("/relations", response_model=List[RelationWriteResult], response_model_by_alias=True)
async def create_relations(
    request: CreateRelationsRequest,
    writer: GraphWriter = Depends(get_graph_writer)
) -> List[RelationWriteResult]:
    """Create relations between existing entities."""
    return await writer.create_relations(request.relations)


@router.post("/entities/open", response_model=GraphPayload, response_model_by_alias=True)
async def open_nodes(
    request: OpenNodesRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator)
) -> GraphPayload:
    """Retrieve entities by exact name, with the relations among them."""
    return await orchestrator.open_nodes(request.names)


@router.get("/entities/search", response_model=GraphPayload, response_model_by_alias=True)
async def search_nodes(
    query: str = Query(..., min_length=1, description="Substring of the entity name"),
    limit: int = Query(default=10, ge=1, le=100),
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator)
) -> GraphPayload:
    """Case-insensitive entity name lookup."""
    return await orchestrator.search_nodes(query, limit)


@router.post("/entities/delete", response_model=DeleteEntitiesResponse, response_model_by_alias=True)
async def delete_entities(
    request: DeleteEntitiesRequest,
    writer: GraphWriter = Depends(get_graph_writer)
) -> DeleteEntitiesResponse:
    """
    Soft delete entities and their relations. Deleted entities stop
    appearing in search and lookup results.
    """
    deleted = await writer.delete_entities(request.entity_names)
    return DeleteEntitiesResponse(requested=request.entity_names, actually_deleted=deleted)

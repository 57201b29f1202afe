"""
Pydantic models for Memento.
"""

from memento.models.entity import (
    Entity,
    Relation,
    EntityCreate,
    RelationCreate,
    EntityWriteResult,
    RelationWriteResult,
    GraphPayload,
    CreateEntitiesRequest,
    CreateRelationsRequest,
    OpenNodesRequest,
    DeleteEntitiesRequest,
    DeleteEntitiesResponse,
)
from memento.models.search import (
    RankedCandidate,
    VectorOnlyCandidate,
    LexicalOnlyCandidate,
    BothCandidate,
    Candidate,
    HybridSearchOptions,
    VectorSearchOptions,
    SearchResult,
    HybridSearchRequest,
    VectorSearchRequest,
    SemanticSearchRequest,
)

__all__ = [
    # Graph records
    "Entity",
    "Relation",
    "EntityCreate",
    "RelationCreate",
    "EntityWriteResult",
    "RelationWriteResult",
    "GraphPayload",
    "CreateEntitiesRequest",
    "CreateRelationsRequest",
    "OpenNodesRequest",
    "DeleteEntitiesRequest",
    "DeleteEntitiesResponse",
    # Search
    "RankedCandidate",
    "VectorOnlyCandidate",
    "LexicalOnlyCandidate",
    "BothCandidate",
    "Candidate",
    "HybridSearchOptions",
    "VectorSearchOptions",
    "SearchResult",
    "HybridSearchRequest",
    "VectorSearchRequest",
    "SemanticSearchRequest",
]

"""
Search models for Memento.

Candidates produced by rank fusion are a tagged variant: a candidate came
from the vector ranker, the lexical ranker, or both. A candidate with
neither score cannot be constructed.
"""

from typing import Annotated, List, Literal, NamedTuple, Optional, Union

from pydantic import ConfigDict, Field, model_validator

from memento.models.base import CamelModel
from memento.models.entity import Entity, Relation


class RankedCandidate(NamedTuple):
    """One row of a single ranker's output."""

    id: str
    entity_type: str
    score: float


class _FusedCandidate(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    entity_type: str
    fused_score: float


class VectorOnlyCandidate(_FusedCandidate):
    kind: Literal["vector"] = "vector"
    vector_score: float


class LexicalOnlyCandidate(_FusedCandidate):
    kind: Literal["lexical"] = "lexical"
    bm25_score: float


class BothCandidate(_FusedCandidate):
    kind: Literal["both"] = "both"
    vector_score: float
    bm25_score: float


Candidate = Annotated[
    Union[VectorOnlyCandidate, LexicalOnlyCandidate, BothCandidate],
    Field(discriminator="kind"),
]


class HybridSearchOptions(CamelModel):
    """Options for hybrid (vector + keyword) search."""

    limit: int = Field(default=10, ge=0, description="Maximum number of entities")
    rrf_k: int = Field(default=60, gt=0, description="RRF constant k")
    min_similarity: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Accepted for parity with vector search; not applied to hybrid candidates"
    )
    entity_types: Optional[List[str]] = Field(
        default=None,
        description="Accepted but not enforced"
    )


class VectorSearchOptions(CamelModel):
    """Options for pure vector search."""

    limit: int = Field(default=10, ge=0, description="Maximum number of entities")
    min_similarity: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Hard similarity floor"
    )


class SearchResult(CamelModel):
    """Unified search payload."""

    entities: List[Entity] = Field(default_factory=list)
    relations: List[Relation] = Field(default_factory=list)
    total: int = 0
    time_taken: int = 0


# ==================== API Requests ====================


class HybridSearchRequest(CamelModel):
    """Request model for hybrid RRF search."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "query": "who owns the search service",
                "limit": 10,
                "rrfK": 60
            }
        }
    )

    query: str = Field(..., min_length=1, max_length=10000, description="Search query text")
    vector: Optional[List[float]] = Field(
        default=None,
        description="Precomputed query embedding; generated from the query when omitted"
    )
    limit: int = Field(default=10, ge=0, le=100)
    rrf_k: int = Field(default=60, gt=0)
    min_similarity: float = Field(default=0.6, ge=0.0, le=1.0)
    entity_types: Optional[List[str]] = None

    def to_options(self) -> HybridSearchOptions:
        return HybridSearchOptions(
            limit=self.limit,
            rrf_k=self.rrf_k,
            min_similarity=self.min_similarity,
            entity_types=self.entity_types,
        )


class VectorSearchRequest(CamelModel):
    """Request model for pure vector search."""

    query: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    vector: Optional[List[float]] = None
    limit: int = Field(default=10, ge=0, le=100)
    min_similarity: float = Field(default=0.6, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def require_query_or_vector(self) -> "VectorSearchRequest":
        if self.query is None and self.vector is None:
            raise ValueError("either query or vector is required")
        return self

    def to_options(self) -> VectorSearchOptions:
        return VectorSearchOptions(limit=self.limit, min_similarity=self.min_similarity)


class SemanticSearchRequest(CamelModel):
    """Text-in search; hybrid by default, vector-only when hybridSearch is false."""

    query: str = Field(..., min_length=1, max_length=10000)
    limit: int = Field(default=10, ge=0, le=100)
    min_similarity: float = Field(default=0.6, ge=0.0, le=1.0)
    hybrid_search: bool = True

"""Entity and relation models for the knowledge graph."""

from typing import List, Optional
from pydantic import ConfigDict, Field

from memento.models.base import CamelModel


class Entity(CamelModel):
    """A hydrated, currently visible knowledge graph entity."""

    name: str
    entity_type: str
    observations: List[str] = Field(default_factory=list)
    id: Optional[str] = None
    version: Optional[int] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    valid_from: Optional[int] = None
    valid_to: Optional[int] = None
    # Date-only display strings derived from createdAt / updatedAt
    created: Optional[str] = None
    updated: Optional[str] = None


class Relation(CamelModel):
    """A directed, typed edge between two entities."""

    from_: str = Field(..., alias="from")
    to: str
    relation_type: str


class EntityCreate(CamelModel):
    """Entity upsert payload."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "TeamBadass",
                "entityType": "team",
                "observations": ["Ships the memory server", "Owns the RRF search"]
            }
        }
    )

    name: str = Field(..., min_length=1, description="Unique entity name")
    entity_type: str = Field(..., min_length=1, description="Entity type")
    observations: List[str] = Field(
        default_factory=list,
        max_length=100,
        description="Observation contents (max 100)"
    )


class RelationCreate(CamelModel):
    """Relation creation payload."""

    from_: str = Field(..., alias="from", min_length=1)
    to: str = Field(..., min_length=1)
    relation_type: str = Field(..., min_length=1)


class EntityWriteResult(CamelModel):
    name: str
    entity_type: str
    was_created: Optional[bool] = None
    error: Optional[str] = None


class RelationWriteResult(CamelModel):
    from_: str = Field(..., alias="from")
    to: str
    relation_type: str
    was_created: Optional[bool] = None
    error: Optional[str] = None


class GraphPayload(CamelModel):
    """Entities plus the visible relations among them."""

    entities: List[Entity] = Field(default_factory=list)
    relations: List[Relation] = Field(default_factory=list)


class CreateEntitiesRequest(CamelModel):
    entities: List[EntityCreate] = Field(..., max_length=50)


class CreateRelationsRequest(CamelModel):
    relations: List[RelationCreate] = Field(..., max_length=100)


class OpenNodesRequest(CamelModel):
    names: List[str] = Field(..., max_length=100, description="Entity names to retrieve (max 100)")


class DeleteEntitiesRequest(CamelModel):
    entity_names: List[str] = Field(..., max_length=100)


class DeleteEntitiesResponse(CamelModel):
    requested: List[str]
    actually_deleted: int

"""
Knowledge graph write operations.

Entities are embedded from a short text rendering of their name, type and
observations before they are upserted, so they are immediately findable
by vector search. Failures are reported per item; one bad entity does not
abort the batch.
"""

import logging
from typing import List, Optional, Sequence, Union

from memento.engine.embedding import EmbeddingProvider
from memento.models.entity import (
    EntityCreate,
    EntityWriteResult,
    RelationCreate,
    RelationWriteResult,
)
from memento.storage.base import GraphStore

logger = logging.getLogger(__name__)


def embedding_text(entity: EntityCreate) -> str:
    """Text that represents an entity in embedding space."""
    return f"{entity.name} ({entity.entity_type}): {' '.join(entity.observations)}"


class GraphWriter:
    """Creates entities and relations and soft deletes entities."""

    def __init__(self, store: GraphStore, embedder: Optional[EmbeddingProvider] = None):
        self.store = store
        self.embedder = embedder

    async def create_entities(self, entities: Sequence[EntityCreate]) -> List[EntityWriteResult]:
        if not entities:
            return []
        if self.embedder is None:
            raise RuntimeError("No embedding provider configured")

        vectors = await self._embed_entities(entities)

        results = []
        for entity, vector in zip(entities, vectors):
            if isinstance(vector, Exception):
                results.append(EntityWriteResult(
                    name=entity.name,
                    entity_type=entity.entity_type,
                    error=str(vector)
                ))
                continue
            try:
                created = await self.store.upsert_entity(
                    entity.name,
                    entity.entity_type,
                    entity.observations,
                    vector
                )
                results.append(EntityWriteResult(
                    name=entity.name,
                    entity_type=entity.entity_type,
                    was_created=created
                ))
            except Exception as e:
                logger.warning(f"Failed to write entity {entity.name!r}: {e}")
                results.append(EntityWriteResult(
                    name=entity.name,
                    entity_type=entity.entity_type,
                    error=str(e)
                ))

        created_count = sum(1 for r in results if r.was_created)
        logger.info(f"Wrote {len(results)} entities ({created_count} new)")
        return results

    async def _embed_entities(
        self,
        entities: Sequence[EntityCreate]
    ) -> List[Union[List[float], Exception]]:
        """
        Embed all entities in one batch call. If the provider rejects the
        batch, embed one at a time so a single bad input only fails its own
        entity; that entity's slot holds the exception.
        """
        texts = [embedding_text(e) for e in entities]
        try:
            return list(await self.embedder.embed_batch(texts))
        except Exception as e:
            logger.warning(f"Batch embedding of {len(texts)} entities failed, retrying one by one: {e}")

        vectors: List[Union[List[float], Exception]] = []
        for entity, text in zip(entities, texts):
            try:
                vectors.append(await self.embedder.embed(text))
            except Exception as e:
                logger.warning(f"Failed to embed entity {entity.name!r}: {e}")
                vectors.append(e)
        return vectors

    async def create_relations(self, relations: Sequence[RelationCreate]) -> List[RelationWriteResult]:
        results = []
        for relation in relations:
            try:
                created = await self.store.create_relation(
                    relation.from_,
                    relation.to,
                    relation.relation_type
                )
            except Exception as e:
                logger.warning(
                    f"Failed to write relation {relation.from_!r} -> {relation.to!r}: {e}"
                )
                results.append(RelationWriteResult.model_validate({
                    "from": relation.from_,
                    "to": relation.to,
                    "relationType": relation.relation_type,
                    "error": str(e),
                }))
                continue

            payload = {
                "from": relation.from_,
                "to": relation.to,
                "relationType": relation.relation_type,
            }
            if created is None:
                payload["error"] = "source or target entity not found"
            else:
                payload["wasCreated"] = created
            results.append(RelationWriteResult.model_validate(payload))

        return results

    async def delete_entities(self, names: Sequence[str]) -> int:
        """Soft delete entities by name. Returns how many were visible."""
        deleted = await self.store.expire_entities(list(dict.fromkeys(names)))
        logger.info(f"Soft deleted {deleted} of {len(names)} requested entities")
        return deleted

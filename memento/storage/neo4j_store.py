"""
Neo4j-backed graph store.

Entities are ``(:Entity)`` nodes keyed by ``name`` with observations kept
as a JSON string and an ``embedding`` property covered by a vector index.
Relations are ``[:RELATES_TO {relationType}]`` edges. Both carry
``validFrom``/``validTo`` and are visible while ``validTo`` is null.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from memento.engine.lexical_ranker import lexical_score
from memento.models.search import RankedCandidate
from memento.storage.base import GraphStore
from memento.storage.neo4j_client import Neo4jHttpClient
from memento.utils.dates import now_ms
from memento.utils.observations import parse_observations, serialize_observations

logger = logging.getLogger(__name__)


VECTOR_QUERY = """
CALL db.index.vector.queryNodes($indexName, $limit, $embedding)
YIELD node, score
RETURN node.name AS id, node.entityType AS entityType, score
ORDER BY score DESC
"""

VECTOR_QUERY_WITH_FLOOR = """
CALL db.index.vector.queryNodes($indexName, $limit, $embedding)
YIELD node, score
WHERE score >= $minScore
RETURN node.name AS id, node.entityType AS entityType, score
ORDER BY score DESC
"""

# Substring prefilter only; rows are scored in Python so a corrupt
# observations string cannot fail the query
KEYWORD_QUERY = """
MATCH (e:Entity)
WHERE e.name CONTAINS $queryText
   OR e.observations CONTAINS $queryText
RETURN e.name AS id, e.entityType AS entityType, e.observations AS observations
"""

ENTITIES_QUERY = """
MATCH (e:Entity)
WHERE e.name IN $names
  AND e.validTo IS NULL
RETURN e.name AS name, e.entityType AS entityType,
       e.observations AS observations, e.id AS id,
       e.version AS version, e.createdAt AS createdAt,
       e.updatedAt AS updatedAt, e.validFrom AS validFrom,
       e.validTo AS validTo
"""

RELATIONS_QUERY = """
MATCH (source:Entity)-[r:RELATES_TO]->(target:Entity)
WHERE source.name IN $names
  AND target.name IN $names
  AND source.validTo IS NULL
  AND target.validTo IS NULL
  AND r.validTo IS NULL
RETURN source.name AS fromName, target.name AS toName, r.relationType AS relationType
"""

NAME_SEARCH_QUERY = """
MATCH (e:Entity)
WHERE toLower(e.name) CONTAINS toLower($query)
  AND e.validTo IS NULL
RETURN e.name AS name
LIMIT $limit
"""

UPSERT_ENTITY_QUERY = """
MERGE (e:Entity {name: $name})
ON CREATE SET
  e.id = $id,
  e.entityType = $entityType,
  e.observations = $observations,
  e.embedding = $embedding,
  e.createdAt = $now,
  e.updatedAt = $now,
  e.version = 1,
  e.validFrom = $now,
  e.validTo = null
ON MATCH SET
  e.entityType = $entityType,
  e.observations = $observations,
  e.embedding = $embedding,
  e.updatedAt = $now,
  e.version = COALESCE(e.version, 0) + 1,
  e.validTo = null
RETURN e.name AS name, e.createdAt = $now AS wasCreated
"""

CREATE_RELATION_QUERY = """
MATCH (source:Entity {name: $fromName}), (target:Entity {name: $toName})
WHERE source.validTo IS NULL AND target.validTo IS NULL
MERGE (source)-[r:RELATES_TO {relationType: $relationType}]->(target)
ON CREATE SET
  r.id = $id,
  r.createdAt = $now,
  r.updatedAt = $now,
  r.version = 1,
  r.validFrom = $now,
  r.validTo = null
ON MATCH SET
  r.updatedAt = $now,
  r.version = COALESCE(r.version, 0) + 1,
  r.validTo = null
RETURN r.createdAt = $now AS wasCreated
"""

EXPIRE_ENTITIES_QUERY = """
MATCH (e:Entity)
WHERE e.name IN $names AND e.validTo IS NULL
SET e.validTo = $now
WITH e
OPTIONAL MATCH (e)-[r:RELATES_TO]-()
WHERE r.validTo IS NULL
SET r.validTo = $now
RETURN count(DISTINCT e) AS deletedCount
"""


class Neo4jGraphStore(GraphStore):
    """GraphStore implementation over the Neo4j Query API."""

    def __init__(
        self,
        client: Neo4jHttpClient,
        vector_index_name: str = "entity_embeddings"
    ):
        self.client = client
        self.vector_index_name = vector_index_name

    async def vector_candidates(
        self,
        vector: Sequence[float],
        count: int,
        min_score: Optional[float] = None
    ) -> List[RankedCandidate]:
        params: Dict[str, Any] = {
            "indexName": self.vector_index_name,
            "limit": count,
            "embedding": list(vector),
        }
        if min_score is not None:
            params["minScore"] = min_score
            rows = await self.client.query(VECTOR_QUERY_WITH_FLOOR, params)
        else:
            rows = await self.client.query(VECTOR_QUERY, params)

        return [
            RankedCandidate(row["id"], row["entityType"], float(row["score"]))
            for row in rows
        ]

    async def keyword_candidates(self, text: str, count: int) -> List[RankedCandidate]:
        if count <= 0:
            return []

        rows = await self.client.query(KEYWORD_QUERY, {"queryText": text})

        scored = []
        for row in rows:
            score = lexical_score(
                row["id"],
                parse_observations(row.get("observations"), row["id"]),
                text
            )
            if score is not None:
                scored.append(RankedCandidate(row["id"], row["entityType"], score))

        # Stable: ties keep the order rows came back in
        scored.sort(key=lambda c: -c.score)
        return scored[:count]

    async def fetch_entities(self, names: Sequence[str]) -> List[Dict[str, Any]]:
        return await self.client.query(ENTITIES_QUERY, {"names": list(names)})

    async def fetch_relations(self, names: Sequence[str]) -> List[Dict[str, Any]]:
        return await self.client.query(RELATIONS_QUERY, {"names": list(names)})

    async def search_names(self, text: str, limit: int) -> List[str]:
        rows = await self.client.query(
            NAME_SEARCH_QUERY,
            {"query": text, "limit": limit}
        )
        return [row["name"] for row in rows]

    async def upsert_entity(
        self,
        name: str,
        entity_type: str,
        observations: Sequence[str],
        embedding: Sequence[float]
    ) -> bool:
        rows = await self.client.query(
            UPSERT_ENTITY_QUERY,
            {
                "name": name,
                "id": str(uuid.uuid4()),
                "entityType": entity_type,
                "observations": serialize_observations(observations),
                "embedding": list(embedding),
                "now": now_ms(),
            }
        )
        return bool(rows and rows[0].get("wasCreated"))

    async def create_relation(
        self,
        from_name: str,
        to_name: str,
        relation_type: str
    ) -> Optional[bool]:
        rows = await self.client.query(
            CREATE_RELATION_QUERY,
            {
                "fromName": from_name,
                "toName": to_name,
                "relationType": relation_type,
                "id": str(uuid.uuid4()),
                "now": now_ms(),
            }
        )
        if not rows:
            return None
        return bool(rows[0].get("wasCreated"))

    async def expire_entities(self, names: Sequence[str]) -> int:
        rows = await self.client.query(
            EXPIRE_ENTITIES_QUERY,
            {"names": list(names), "now": now_ms()}
        )
        return int(rows[0].get("deletedCount") or 0) if rows else 0

    async def close(self):
        await self.client.close()

"""
In-memory collaborators shared by the test suite.
"""

import asyncio
import zlib
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from memento.engine.embedding import EmbeddingProvider
from memento.errors import UpstreamQueryFailure
from memento.models.search import RankedCandidate
from memento.storage.base import GraphStore

DIMENSION = 8


def unit(*components: float) -> List[float]:
    """Vector of DIMENSION floats, zero padded."""
    values = [float(c) for c in components] + [0.0] * (DIMENSION - len(components))
    return values[:DIMENSION]


class HashEmbedder(EmbeddingProvider):
    """Deterministic unit vectors seeded from the text."""

    def __init__(self, dimension: int = DIMENSION):
        self._dimension = dimension
        self.calls: List[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def _vector(self, text: str) -> List[float]:
        rng = np.random.RandomState(zlib.crc32(text.encode("utf-8")))
        vector = rng.normal(size=self._dimension).astype(np.float32)
        return (vector / np.linalg.norm(vector)).tolist()

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return self._vector(text)

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.extend(texts)
        return [self._vector(text) for text in texts]


class ScriptedStore(GraphStore):
    """
    GraphStore with canned ranker output and records.

    Every call is counted so tests can assert which stages ran.
    """

    def __init__(
        self,
        vector_results: Optional[List[RankedCandidate]] = None,
        keyword_results: Optional[List[RankedCandidate]] = None,
        entities: Optional[List[Dict[str, Any]]] = None,
        relations: Optional[List[Dict[str, Any]]] = None,
    ):
        self.vector_results = vector_results or []
        self.keyword_results = keyword_results or []
        self.entities = entities or []
        self.relations = relations or []
        self.calls: Dict[str, int] = {}
        self.requested_counts: Dict[str, int] = {}
        self.fail_on: Optional[str] = None
        self.block_on: Optional[str] = None
        self.cancelled: List[str] = []

    async def _enter(self, name: str):
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.fail_on == name:
            raise UpstreamQueryFailure(f"{name} exploded", status=500)
        if self.block_on == name:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled.append(name)
                raise

    async def vector_candidates(self, vector, count, min_score=None):
        self.requested_counts["vector"] = count
        await self._enter("vector_candidates")
        results = self.vector_results
        if min_score is not None:
            results = [r for r in results if r.score >= min_score]
        return results[:count]

    async def keyword_candidates(self, text, count):
        self.requested_counts["keyword"] = count
        await self._enter("keyword_candidates")
        return self.keyword_results[:count]

    async def fetch_entities(self, names):
        await self._enter("fetch_entities")
        wanted = set(names)
        return [row for row in self.entities if row["name"] in wanted]

    async def fetch_relations(self, names):
        await self._enter("fetch_relations")
        wanted = set(names)
        return [
            row for row in self.relations
            if row["fromName"] in wanted and row["toName"] in wanted
        ]

    async def search_names(self, text, limit):
        await self._enter("search_names")
        lowered = text.lower()
        return [row["name"] for row in self.entities if lowered in row["name"].lower()][:limit]

    async def upsert_entity(self, name, entity_type, observations, embedding):
        await self._enter("upsert_entity")
        return True

    async def create_relation(self, from_name, to_name, relation_type):
        await self._enter("create_relation")
        return True

    async def expire_entities(self, names):
        await self._enter("expire_entities")
        return len(names)


def entity_row(name: str, entity_type: str = "person", observations: Any = '[]', **extra) -> Dict[str, Any]:
    row = {
        "name": name,
        "entityType": entity_type,
        "observations": observations,
        "id": f"id-{name}",
        "version": 1,
        "createdAt": 1700000000000,
        "updatedAt": 1700000000000,
        "validFrom": 1700000000000,
        "validTo": None,
    }
    row.update(extra)
    return row


def relation_row(source: str, target: str, relation_type: str = "knows") -> Dict[str, str]:
    return {"fromName": source, "toName": target, "relationType": relation_type}

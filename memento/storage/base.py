"""
Graph store capability interface for Memento.

The search core needs three things from a store: an approximate nearest
neighbour lookup, a weighted substring match, and bulk hydration of
currently visible entities and relations. Query syntax is the store's
business.

Entity records returned by ``fetch_entities`` use these keys:
``name, entityType, observations (serialized), id, version, createdAt,
updatedAt, validFrom, validTo``. Relation records use ``fromName, toName,
relationType``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from memento.models.search import RankedCandidate


class GraphStore(ABC):
    """Abstract knowledge graph store."""

    # ==================== Search Capabilities ====================

    @abstractmethod
    async def vector_candidates(
        self,
        vector: Sequence[float],
        count: int,
        min_score: Optional[float] = None
    ) -> List[RankedCandidate]:
        """
        Approximate nearest neighbour lookup.

        Args:
            vector: Query embedding
            count: Maximum number of candidates
            min_score: Optional similarity floor

        Returns:
            Candidates ordered by similarity, descending
        """

    @abstractmethod
    async def keyword_candidates(
        self,
        text: str,
        count: int
    ) -> List[RankedCandidate]:
        """
        Weighted substring match over names and observations.

        Returns:
            Candidates ordered by lexical score, descending
        """

    @abstractmethod
    async def fetch_entities(self, names: Sequence[str]) -> List[Dict[str, Any]]:
        """Fetch currently visible entity records for the given names."""

    @abstractmethod
    async def fetch_relations(self, names: Sequence[str]) -> List[Dict[str, Any]]:
        """Fetch visible relations whose endpoints both lie in ``names``."""

    @abstractmethod
    async def search_names(self, text: str, limit: int) -> List[str]:
        """Case-insensitive name lookup over visible entities."""

    # ==================== Write Operations ====================

    @abstractmethod
    async def upsert_entity(
        self,
        name: str,
        entity_type: str,
        observations: Sequence[str],
        embedding: Sequence[float]
    ) -> bool:
        """
        Create or update an entity.

        Returns:
            True if the entity was created, False if it was updated
        """

    @abstractmethod
    async def create_relation(
        self,
        from_name: str,
        to_name: str,
        relation_type: str
    ) -> Optional[bool]:
        """
        Create or refresh a relation between two visible entities.

        Returns:
            True if created, False if refreshed, None if an endpoint is missing
        """

    @abstractmethod
    async def expire_entities(self, names: Sequence[str]) -> int:
        """Soft delete entities and their relations. Returns the expired count."""

    async def close(self):
        """Release store resources."""

"""
Vector ranker for Memento.
Semantic candidate generation from the store's nearest neighbour index.
"""

import logging
from typing import List, Optional, Sequence

from memento.models.search import RankedCandidate
from memento.storage.base import GraphStore

logger = logging.getLogger(__name__)


class VectorRanker:
    """
    Queries the ANN index with a query embedding.

    Hybrid search calls this without a similarity floor; the floor is
    only applied on the vector-only path.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    async def rank(
        self,
        vector: Sequence[float],
        count: int,
        min_similarity: Optional[float] = None
    ) -> List[RankedCandidate]:
        """
        Return up to ``count`` candidates ordered by similarity, descending.

        Args:
            vector: Query embedding
            count: Candidate count (hybrid search asks for 2 x limit)
            min_similarity: Optional hard floor on similarity

        Raises:
            UpstreamQueryFailure: if the index query fails
        """
        if count <= 0:
            return []

        candidates = await self.store.vector_candidates(vector, count, min_similarity)

        if min_similarity is not None:
            candidates = [c for c in candidates if c.score >= min_similarity]

        ranked = sorted(candidates, key=lambda c: -c.score)[:count]

        logger.debug(f"Vector ranker: {len(ranked)} candidates (floor={min_similarity})")
        return ranked

"""
Search orchestration for Memento.

Hybrid search pipeline:

    embed query -> [vector ranker || lexical ranker] -> RRF fuse -> hydrate

The two rankers have no data dependency and run concurrently; fusion
waits for both. An empty fused list short-circuits to an empty result
without touching the store again. Any stage failure aborts the whole
search: a result built from only one ranking axis is never returned.
"""

import logging
import time
from typing import List, Optional, Sequence

from memento.engine.embedding import EmbeddingProvider
from memento.engine.fusion import RankFusionEngine
from memento.engine.hydrator import ResultHydrator
from memento.engine.lexical_ranker import LexicalRanker
from memento.engine.vector_ranker import VectorRanker
from memento.models.entity import GraphPayload
from memento.models.search import HybridSearchOptions, SearchResult, VectorSearchOptions
from memento.storage.base import GraphStore
from memento.utils.aio import gather_or_cancel

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000))


class SearchOrchestrator:
    """
    Sequences rankers, fusion and hydration into one search call.

    Holds no per-search state; concurrent searches share nothing but the
    store and embedding provider.
    """

    def __init__(
        self,
        store: GraphStore,
        embedder: Optional[EmbeddingProvider] = None,
        candidate_multiplier: int = 2,
        dimension: Optional[int] = None
    ):
        """
        Args:
            store: Graph store collaborator
            embedder: Embedding provider, needed only for text-in searches
            candidate_multiplier: Each ranker fetches multiplier x limit candidates
            dimension: Expected query vector size, when known
        """
        self.store = store
        self.embedder = embedder
        self.candidate_multiplier = candidate_multiplier
        self.dimension = dimension
        self.vector_ranker = VectorRanker(store)
        self.lexical_ranker = LexicalRanker(store)
        self.hydrator = ResultHydrator(store)

    # ==================== Hybrid ====================

    async def hybrid_search(
        self,
        vector: Sequence[float],
        text: str,
        options: Optional[HybridSearchOptions] = None
    ) -> SearchResult:
        """
        Hybrid vector + keyword search fused with Reciprocal Rank Fusion.

        ``options.min_similarity`` is not applied to hybrid candidates and
        ``options.entity_types`` is accepted but not enforced.

        Raises:
            UpstreamQueryFailure: if a ranker or hydration query fails
        """
        return await self._hybrid(vector, text, options or HybridSearchOptions(), time.perf_counter())

    async def _hybrid(
        self,
        vector: Sequence[float],
        text: str,
        options: HybridSearchOptions,
        start: float
    ) -> SearchResult:
        if options.entity_types:
            logger.debug(f"entity_types {options.entity_types} accepted but not applied")

        fusion = RankFusionEngine(k=options.rrf_k)
        count = options.limit * self.candidate_multiplier

        try:
            vector_results, lexical_results = await gather_or_cancel(
                self.vector_ranker.rank(vector, count),
                self.lexical_ranker.rank(text, count),
            )

            fused = fusion.fuse(vector_results, lexical_results, options.limit)
            if not fused:
                logger.info(f"Hybrid search for {text!r}: no candidates")
                return SearchResult(time_taken=_elapsed_ms(start))

            entities, relations = await self.hydrator.hydrate([c.id for c in fused])
        except Exception as e:
            logger.error(f"Hybrid search failed: {e}")
            raise

        result = SearchResult(
            entities=entities,
            relations=relations,
            total=len(entities),
            time_taken=_elapsed_ms(start),
        )
        logger.info(
            f"Hybrid search for {text!r}: {len(vector_results)} vector, "
            f"{len(lexical_results)} lexical, {len(fused)} fused, "
            f"{result.total} hydrated in {result.time_taken}ms"
        )
        return result

    # ==================== Vector Only ====================

    async def vector_only_search(
        self,
        vector: Sequence[float],
        options: Optional[VectorSearchOptions] = None
    ) -> SearchResult:
        """
        Pure vector search with ``options.min_similarity`` as a hard floor.

        Raises:
            UpstreamQueryFailure: if the index or hydration query fails
        """
        return await self._vector_only(vector, options or VectorSearchOptions(), time.perf_counter())

    async def _vector_only(
        self,
        vector: Sequence[float],
        options: VectorSearchOptions,
        start: float
    ) -> SearchResult:
        try:
            candidates = await self.vector_ranker.rank(
                vector,
                options.limit,
                min_similarity=options.min_similarity
            )
            if not candidates:
                return SearchResult(time_taken=_elapsed_ms(start))

            entities, relations = await self.hydrator.hydrate([c.id for c in candidates])
        except Exception as e:
            logger.error(f"Vector search failed: {e}")
            raise

        return SearchResult(
            entities=entities,
            relations=relations,
            total=len(entities),
            time_taken=_elapsed_ms(start),
        )

    # ==================== Text In ====================

    async def semantic_search(
        self,
        query: str,
        limit: int = 10,
        min_similarity: float = 0.6,
        hybrid: bool = True,
        rrf_k: int = 60
    ) -> SearchResult:
        """
        Embed the query text, then run hybrid (default) or vector-only search.
        ``timeTaken`` includes the embedding call.

        Raises:
            EmbeddingFailure: if the query cannot be embedded
            UpstreamQueryFailure: if a store query fails
        """
        start = time.perf_counter()
        vector = await self.embed_query(query)

        if hybrid:
            options = HybridSearchOptions(limit=limit, rrf_k=rrf_k, min_similarity=min_similarity)
            return await self._hybrid(vector, query, options, start)

        options = VectorSearchOptions(limit=limit, min_similarity=min_similarity)
        return await self._vector_only(vector, options, start)

    async def embed_query(self, query: str) -> List[float]:
        if self.embedder is None:
            raise RuntimeError("No embedding provider configured")
        try:
            return await self.embedder.embed(query)
        except Exception as e:
            logger.error(f"Failed to generate embedding: {e}")
            raise

    # ==================== Direct Lookups ====================

    async def open_nodes(self, names: Sequence[str]) -> GraphPayload:
        """Hydrate entities by exact name, with the relations among them."""
        if not names:
            return GraphPayload()
        entities, relations = await self.hydrator.hydrate(names)
        return GraphPayload(entities=entities, relations=relations)

    async def search_nodes(self, query: str, limit: int = 10) -> GraphPayload:
        """Case-insensitive entity name lookup, hydrated."""
        names = await self.store.search_names(query, limit)
        if not names:
            return GraphPayload()
        entities, relations = await self.hydrator.hydrate(names)
        return GraphPayload(entities=entities, relations=relations)

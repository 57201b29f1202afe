"""
Engine layer for Memento.
Contains embedding, ranking, fusion, hydration and search logic.
"""

from memento.engine.embedding import (
    EmbeddingProvider,
    LocalEmbeddingEngine,
    VoyageEmbeddingService,
    create_embedding_provider,
)
from memento.engine.fusion import RankFusionEngine
from memento.engine.graph_writer import GraphWriter
from memento.engine.hydrator import ResultHydrator
from memento.engine.lexical_ranker import LexicalRanker
from memento.engine.search import SearchOrchestrator
from memento.engine.vector_ranker import VectorRanker

__all__ = [
    "EmbeddingProvider",
    "LocalEmbeddingEngine",
    "VoyageEmbeddingService",
    "create_embedding_provider",
    "RankFusionEngine",
    "GraphWriter",
    "ResultHydrator",
    "LexicalRanker",
    "SearchOrchestrator",
    "VectorRanker",
]

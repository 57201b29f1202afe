"""
FastAPI dependencies for Memento.
Provides singleton instances of the store, embedder and search services.
"""

import logging
from typing import Optional

from memento.config import Settings, settings
from memento.engine.embedding import EmbeddingProvider, create_embedding_provider
from memento.engine.graph_writer import GraphWriter
from memento.engine.search import SearchOrchestrator
from memento.storage.base import GraphStore
from memento.storage.neo4j_client import Neo4jHttpClient
from memento.storage.neo4j_store import Neo4jGraphStore
from memento.storage.sqlite_store import SQLiteGraphStore

logger = logging.getLogger(__name__)


def create_store(config: Settings) -> GraphStore:
    """Build the graph store selected by ``config.store_backend``."""
    if config.store_backend == "sqlite":
        return SQLiteGraphStore(config.database_path, dimension=config.active_dimension)
    if config.store_backend == "neo4j":
        if not (config.neo4j_uri and config.neo4j_user and config.neo4j_password):
            raise ValueError("MEMENTO_NEO4J_URI, MEMENTO_NEO4J_USER and MEMENTO_NEO4J_PASSWORD are required")
        client = Neo4jHttpClient(
            config.neo4j_uri,
            config.neo4j_user,
            config.neo4j_password,
            timeout=config.request_timeout
        )
        return Neo4jGraphStore(client, vector_index_name=config.vector_index_name)
    raise ValueError(f"Unknown store backend: {config.store_backend}")


class DatabaseManager:
    """
    Singleton manager for the store and the services built on it.
    Components are created once and reused across requests.
    """

    _instance = None
    _initialized = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config: Optional[Settings] = None):
        if self._initialized:
            return

        self.config = config or settings
        logger.info(f"Initializing Memento components (store: {self.config.store_backend})...")

        self.store = create_store(self.config)

        # Text-in operations need an embedder; vector-in search works without one
        self.embedder: Optional[EmbeddingProvider] = None
        try:
            self.embedder = create_embedding_provider(self.config)
        except ValueError as e:
            logger.warning(f"Embedding provider unavailable: {e}")

        self.search = SearchOrchestrator(
            self.store,
            embedder=self.embedder,
            candidate_multiplier=self.config.candidate_multiplier,
            dimension=self.config.active_dimension
        )
        self.writer = GraphWriter(self.store, self.embedder)

        self._initialized = True

    async def startup(self):
        """Open store connections."""
        if isinstance(self.store, SQLiteGraphStore):
            await self.store.initialize()
            count = await self.store.count_entities()
            logger.info(f"SQLite store ready: {count} entities, {self.store.vector_index.size} vectors")

    async def close(self):
        """Close all connections."""
        await self.store.close()
        if self.embedder is not None:
            await self.embedder.close()
        logger.info("Memento connections closed")

    @classmethod
    def reset(cls):
        """Forget the singleton so the next access builds fresh components."""
        cls._instance = None
        cls._initialized = False


# Singleton instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get the database manager singleton."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def reset_db_manager():
    global _db_manager
    _db_manager = None
    DatabaseManager.reset()


# Dependency injection functions for FastAPI
def get_store() -> GraphStore:
    """FastAPI dependency for the graph store."""
    return get_db_manager().store


def get_search_orchestrator() -> SearchOrchestrator:
    """FastAPI dependency for the search orchestrator."""
    return get_db_manager().search


def get_graph_writer() -> GraphWriter:
    """FastAPI dependency for graph writes."""
    return get_db_manager().writer

"""
Storage layer for Memento.
"""

from memento.storage.base import GraphStore
from memento.storage.neo4j_client import Neo4jHttpClient
from memento.storage.neo4j_store import Neo4jGraphStore
from memento.storage.sqlite_store import SQLiteGraphStore
from memento.storage.vector_index import VectorIndex

__all__ = [
    "GraphStore",
    "Neo4jHttpClient",
    "Neo4jGraphStore",
    "SQLiteGraphStore",
    "VectorIndex",
]

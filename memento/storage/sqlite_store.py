"""
SQLite persistence layer for Memento.

A self-contained graph store: entities and relations live in SQLite,
embeddings are kept as float32 blobs and mirrored into an in-memory FAISS
index for nearest neighbour lookups.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiosqlite
import numpy as np

from memento.engine.lexical_ranker import lexical_score
from memento.errors import UpstreamQueryFailure
from memento.models.search import RankedCandidate
from memento.storage.base import GraphStore
from memento.storage.vector_index import VectorIndex
from memento.utils.dates import now_ms
from memento.utils.observations import parse_observations, serialize_observations

logger = logging.getLogger(__name__)


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS entities (
        name TEXT PRIMARY KEY,
        id TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        observations TEXT DEFAULT '[]',
        embedding BLOB,
        version INTEGER NOT NULL DEFAULT 1,
        created_at INTEGER,
        updated_at INTEGER,
        valid_from INTEGER,
        valid_to INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS relations (
        id TEXT PRIMARY KEY,
        from_name TEXT NOT NULL,
        to_name TEXT NOT NULL,
        relation_type TEXT NOT NULL,
        version INTEGER NOT NULL DEFAULT 1,
        created_at INTEGER,
        updated_at INTEGER,
        valid_from INTEGER,
        valid_to INTEGER,
        UNIQUE (from_name, to_name, relation_type)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_relations_from ON relations(from_name)",
    "CREATE INDEX IF NOT EXISTS idx_relations_to ON relations(to_name)",
    "CREATE INDEX IF NOT EXISTS idx_entities_valid_to ON entities(valid_to)",
]


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class SQLiteGraphStore(GraphStore):
    """
    SQLite-backed GraphStore.

    Call ``initialize()`` before use; it creates the schema and loads the
    vector index from the stored embeddings.
    """

    def __init__(self, db_path: str = "data/memento.db", dimension: int = 384):
        """Initialize SQLite store."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.vector_index = VectorIndex(dimension=dimension)
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock: Optional[asyncio.Lock] = None

    async def initialize(self):
        """Open the connection, create tables and rebuild the vector index."""
        if self._conn is None:
            self._conn = await aiosqlite.connect(str(self.db_path))
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA journal_mode = WAL")
            await self._conn.execute("PRAGMA synchronous = NORMAL")
            self._lock = asyncio.Lock()

        async with self._cursor() as cursor:
            for statement in SCHEMA:
                await cursor.execute(statement)

        embeddings = await self._load_embeddings()
        self.vector_index.rebuild_from_embeddings(embeddings)

    @asynccontextmanager
    async def _cursor(self):
        """
        Cursor that commits on success and maps SQLite errors.

        All coroutines share one connection, so each cursor holds the store
        lock for its whole transaction; a commit or rollback never touches
        another caller's statements.
        """
        if self._conn is None or self._lock is None:
            raise UpstreamQueryFailure("store is not initialized")
        async with self._lock:
            cursor = await self._conn.cursor()
            try:
                yield cursor
                await self._conn.commit()
            except aiosqlite.Error as e:
                await self._conn.rollback()
                raise UpstreamQueryFailure(f"{type(e).__name__}: {e}") from e
            except BaseException:
                await self._conn.rollback()
                raise
            finally:
                await cursor.close()

    # ==================== Embedding Serialization ====================

    @staticmethod
    def _serialize_embedding(embedding: Sequence[float]) -> bytes:
        return np.asarray(embedding, dtype=np.float32).tobytes()

    @staticmethod
    def _deserialize_embedding(data: Optional[bytes]) -> Optional[np.ndarray]:
        if data is None:
            return None
        return np.frombuffer(data, dtype=np.float32)

    async def _load_embeddings(self) -> List[Tuple[str, np.ndarray]]:
        async with self._cursor() as cursor:
            await cursor.execute(
                "SELECT name, embedding FROM entities WHERE embedding IS NOT NULL ORDER BY rowid"
            )
            rows = await cursor.fetchall()
        return [(row["name"], self._deserialize_embedding(row["embedding"])) for row in rows]

    # ==================== Search Capabilities ====================

    async def vector_candidates(
        self,
        vector: Sequence[float],
        count: int,
        min_score: Optional[float] = None
    ) -> List[RankedCandidate]:
        try:
            if min_score is None:
                hits = self.vector_index.search(vector, top_k=count)
            else:
                hits = self.vector_index.search(vector, top_k=count, min_score=min_score)
        except ValueError as e:
            raise UpstreamQueryFailure(str(e)) from e

        if not hits:
            return []

        names = [name for name, _ in hits]
        async with self._cursor() as cursor:
            await cursor.execute(
                f"SELECT name, entity_type FROM entities WHERE name IN ({_placeholders(len(names))})",
                names
            )
            types = {row["name"]: row["entity_type"] for row in await cursor.fetchall()}

        return [
            RankedCandidate(name, types[name], score)
            for name, score in hits
            if name in types
        ]

    async def keyword_candidates(self, text: str, count: int) -> List[RankedCandidate]:
        if count <= 0:
            return []

        async with self._cursor() as cursor:
            await cursor.execute(
                "SELECT name, entity_type, observations FROM entities ORDER BY rowid"
            )
            rows = await cursor.fetchall()

        scored = []
        for row in rows:
            score = lexical_score(
                row["name"],
                parse_observations(row["observations"], row["name"]),
                text
            )
            if score is not None:
                scored.append(RankedCandidate(row["name"], row["entity_type"], score))

        # Stable: ties keep table order
        scored.sort(key=lambda c: -c.score)
        return scored[:count]

    async def fetch_entities(self, names: Sequence[str]) -> List[Dict[str, Any]]:
        names = list(names)
        if not names:
            return []

        async with self._cursor() as cursor:
            await cursor.execute(
                f"""
                SELECT name, entity_type, observations, id, version,
                       created_at, updated_at, valid_from, valid_to
                FROM entities
                WHERE name IN ({_placeholders(len(names))})
                  AND valid_to IS NULL
                """,
                names
            )
            rows = await cursor.fetchall()

        return [
            {
                "name": row["name"],
                "entityType": row["entity_type"],
                "observations": row["observations"],
                "id": row["id"],
                "version": row["version"],
                "createdAt": row["created_at"],
                "updatedAt": row["updated_at"],
                "validFrom": row["valid_from"],
                "validTo": row["valid_to"],
            }
            for row in rows
        ]

    async def fetch_relations(self, names: Sequence[str]) -> List[Dict[str, Any]]:
        names = list(names)
        if not names:
            return []

        marks = _placeholders(len(names))
        async with self._cursor() as cursor:
            await cursor.execute(
                f"""
                SELECT r.from_name, r.to_name, r.relation_type
                FROM relations r
                JOIN entities f ON f.name = r.from_name
                JOIN entities t ON t.name = r.to_name
                WHERE r.from_name IN ({marks})
                  AND r.to_name IN ({marks})
                  AND r.valid_to IS NULL
                  AND f.valid_to IS NULL
                  AND t.valid_to IS NULL
                ORDER BY r.rowid
                """,
                names + names
            )
            rows = await cursor.fetchall()

        return [
            {"fromName": row["from_name"], "toName": row["to_name"], "relationType": row["relation_type"]}
            for row in rows
        ]

    async def search_names(self, text: str, limit: int) -> List[str]:
        async with self._cursor() as cursor:
            await cursor.execute(
                """
                SELECT name FROM entities
                WHERE instr(lower(name), lower(?)) > 0
                  AND valid_to IS NULL
                ORDER BY rowid
                LIMIT ?
                """,
                (text, limit)
            )
            rows = await cursor.fetchall()
        return [row["name"] for row in rows]

    # ==================== Write Operations ====================

    async def upsert_entity(
        self,
        name: str,
        entity_type: str,
        observations: Sequence[str],
        embedding: Sequence[float]
    ) -> bool:
        if len(embedding) != self.vector_index.dimension:
            raise ValueError(
                f"Embedding dimension {len(embedding)} does not match index dimension {self.vector_index.dimension}"
            )

        now = now_ms()
        blob = self._serialize_embedding(embedding)
        payload = serialize_observations(observations)

        async with self._cursor() as cursor:
            await cursor.execute("SELECT version FROM entities WHERE name = ?", (name,))
            existing = await cursor.fetchone()

            if existing is None:
                await cursor.execute(
                    """
                    INSERT INTO entities (name, id, entity_type, observations, embedding,
                                          version, created_at, updated_at, valid_from, valid_to)
                    VALUES (?, ?, ?, ?, ?, 1, ?, ?, ?, NULL)
                    """,
                    (name, str(uuid.uuid4()), entity_type, payload, blob, now, now, now)
                )
            else:
                await cursor.execute(
                    """
                    UPDATE entities
                    SET entity_type = ?, observations = ?, embedding = ?,
                        version = COALESCE(version, 0) + 1, updated_at = ?, valid_to = NULL
                    WHERE name = ?
                    """,
                    (entity_type, payload, blob, now, name)
                )

        self.vector_index.add(name, embedding)
        return existing is None

    async def create_relation(
        self,
        from_name: str,
        to_name: str,
        relation_type: str
    ) -> Optional[bool]:
        now = now_ms()

        async with self._cursor() as cursor:
            await cursor.execute(
                "SELECT COUNT(*) AS n FROM entities WHERE name IN (?, ?) AND valid_to IS NULL",
                (from_name, to_name)
            )
            found = (await cursor.fetchone())["n"]
            expected = 1 if from_name == to_name else 2
            if found < expected:
                return None

            await cursor.execute(
                """
                SELECT id FROM relations
                WHERE from_name = ? AND to_name = ? AND relation_type = ?
                """,
                (from_name, to_name, relation_type)
            )
            existing = await cursor.fetchone()

            if existing is None:
                await cursor.execute(
                    """
                    INSERT INTO relations (id, from_name, to_name, relation_type, version,
                                           created_at, updated_at, valid_from, valid_to)
                    VALUES (?, ?, ?, ?, 1, ?, ?, ?, NULL)
                    """,
                    (str(uuid.uuid4()), from_name, to_name, relation_type, now, now, now)
                )
            else:
                await cursor.execute(
                    """
                    UPDATE relations
                    SET version = version + 1, updated_at = ?, valid_to = NULL
                    WHERE id = ?
                    """,
                    (now, existing["id"])
                )

        return existing is None

    async def expire_entities(self, names: Sequence[str]) -> int:
        names = list(names)
        if not names:
            return 0

        now = now_ms()
        marks = _placeholders(len(names))
        async with self._cursor() as cursor:
            await cursor.execute(
                f"UPDATE entities SET valid_to = ? WHERE name IN ({marks}) AND valid_to IS NULL",
                [now] + names
            )
            expired = cursor.rowcount
            await cursor.execute(
                f"""
                UPDATE relations SET valid_to = ?
                WHERE (from_name IN ({marks}) OR to_name IN ({marks}))
                  AND valid_to IS NULL
                """,
                [now] + names + names
            )
        return expired

    # ==================== Utility Operations ====================

    async def count_entities(self) -> int:
        async with self._cursor() as cursor:
            await cursor.execute("SELECT COUNT(*) AS n FROM entities WHERE valid_to IS NULL")
            return (await cursor.fetchone())["n"]

    async def close(self):
        """Close the connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            self._lock = None

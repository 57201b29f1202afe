"""
Tests for the SQLite graph store and its vector index.
"""

import asyncio

import aiosqlite
import numpy as np
import pytest

from memento.errors import UpstreamQueryFailure
from memento.storage.sqlite_store import SQLiteGraphStore
from memento.storage.vector_index import VectorIndex
from tests.fakes import DIMENSION, unit


async def seed(store):
    await store.upsert_entity("Alice", "person", ["likes tea", "works with Bob"], unit(1, 0))
    await store.upsert_entity("Bob", "person", ["likes coffee"], unit(0.8, 0.6))
    await store.upsert_entity("Search", "project", ["owned by Alice"], unit(0, 1))
    await store.create_relation("Alice", "Bob", "knows")
    await store.create_relation("Alice", "Search", "owns")


class TestVectorIndex:
    """Tests for the FAISS index wrapper."""

    def test_add_and_search(self):
        index = VectorIndex(dimension=DIMENSION)
        index.add("a", unit(1, 0))
        index.add("b", unit(0, 1))

        results = index.search(unit(1, 0.1), top_k=2)
        assert [name for name, _ in results] == ["a", "b"]
        assert results[0][1] > results[1][1]

    def test_replace_keeps_one_entry(self):
        index = VectorIndex(dimension=DIMENSION, deletion_threshold=0.9)
        index.add("a", unit(1, 0))
        index.add("a", unit(0, 1))

        assert index.size == 1
        results = index.search(unit(0, 1), top_k=5)
        assert results == [("a", pytest.approx(1.0, abs=1e-5))]

    def test_compaction(self):
        index = VectorIndex(dimension=DIMENSION, deletion_threshold=0.2)
        for i in range(4):
            index.add(f"n{i}", unit(1, i))
        index.remove("n0")

        assert index.total_size == 3
        assert index.size == 3
        assert {name for name, _ in index.search(unit(1, 1), top_k=10)} == {"n1", "n2", "n3"}

    def test_min_score(self):
        index = VectorIndex(dimension=DIMENSION)
        index.add("a", unit(1, 0))
        index.add("b", unit(0, 1))
        assert [name for name, _ in index.search(unit(1, 0), min_score=0.5)] == ["a"]

    def test_dimension_mismatch(self):
        index = VectorIndex(dimension=DIMENSION)
        with pytest.raises(ValueError):
            index.add("a", [1.0, 0.0])


class TestSQLiteGraphStore:
    """Tests for SQLiteGraphStore."""

    @pytest.mark.asyncio
    async def test_upsert_reports_creation(self, sqlite_store):
        assert await sqlite_store.upsert_entity("Alice", "person", [], unit(1)) is True
        assert await sqlite_store.upsert_entity("Alice", "person", ["new"], unit(1)) is False

        rows = await sqlite_store.fetch_entities(["Alice"])
        assert rows[0]["version"] == 2
        assert rows[0]["observations"] == '["new"]'

    @pytest.mark.asyncio
    async def test_vector_candidates(self, sqlite_store):
        await seed(sqlite_store)
        results = await sqlite_store.vector_candidates(unit(1, 0), 2)

        assert [r.id for r in results] == ["Alice", "Bob"]
        assert results[0].entity_type == "person"
        assert results[0].score == pytest.approx(1.0, abs=1e-5)
        assert results[1].score == pytest.approx(0.8, abs=1e-5)

    @pytest.mark.asyncio
    async def test_vector_candidates_with_floor(self, sqlite_store):
        await seed(sqlite_store)
        results = await sqlite_store.vector_candidates(unit(1, 0), 10, min_score=0.5)
        assert [r.id for r in results] == ["Alice", "Bob"]

    @pytest.mark.asyncio
    async def test_vector_dimension_mismatch(self, sqlite_store):
        await seed(sqlite_store)
        with pytest.raises(UpstreamQueryFailure):
            await sqlite_store.vector_candidates([1.0, 0.0], 5)

    @pytest.mark.asyncio
    async def test_keyword_candidates(self, sqlite_store):
        await seed(sqlite_store)
        results = await sqlite_store.keyword_candidates("Alice", 10)

        assert [(r.id, r.score) for r in results] == [("Alice", 2.0), ("Search", 1.5)]

    @pytest.mark.asyncio
    async def test_keyword_candidates_respects_count(self, sqlite_store):
        await seed(sqlite_store)
        results = await sqlite_store.keyword_candidates("likes", 1)
        assert [r.id for r in results] == ["Alice"]

    @pytest.mark.asyncio
    async def test_relations_among_names(self, sqlite_store):
        await seed(sqlite_store)
        rows = await sqlite_store.fetch_relations(["Alice", "Bob"])
        assert rows == [{"fromName": "Alice", "toName": "Bob", "relationType": "knows"}]

    @pytest.mark.asyncio
    async def test_relation_needs_visible_endpoints(self, sqlite_store):
        await seed(sqlite_store)
        assert await sqlite_store.create_relation("Alice", "Ghost", "knows") is None
        assert await sqlite_store.create_relation("Alice", "Bob", "knows") is False

    @pytest.mark.asyncio
    async def test_soft_delete_hides_records(self, sqlite_store):
        await seed(sqlite_store)
        assert await sqlite_store.expire_entities(["Bob", "Ghost"]) == 1

        rows = await sqlite_store.fetch_entities(["Alice", "Bob"])
        assert [row["name"] for row in rows] == ["Alice"]
        assert await sqlite_store.fetch_relations(["Alice", "Bob"]) == []
        assert await sqlite_store.search_names("bob", 10) == []
        assert await sqlite_store.count_entities() == 2

    @pytest.mark.asyncio
    async def test_search_names(self, sqlite_store):
        await seed(sqlite_store)
        assert await sqlite_store.search_names("AL", 10) == ["Alice"]

    @pytest.mark.asyncio
    async def test_corrupt_observations_do_not_break_keywords(self, sqlite_store):
        await seed(sqlite_store)
        async with aiosqlite.connect(str(sqlite_store.db_path)) as conn:
            await conn.execute("UPDATE entities SET observations = '{broken' WHERE name = 'Search'")
            await conn.commit()

        results = await sqlite_store.keyword_candidates("Alice", 10)
        assert [r.id for r in results] == ["Alice"]

    @pytest.mark.asyncio
    async def test_index_rebuilt_on_restart(self, sqlite_store):
        await seed(sqlite_store)
        await sqlite_store.close()

        reopened = SQLiteGraphStore(str(sqlite_store.db_path), dimension=DIMENSION)
        await reopened.initialize()
        try:
            assert reopened.vector_index.size == 3
            results = await reopened.vector_candidates(unit(0, 1), 1)
            assert results[0].id == "Search"
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_embeddings_stored_as_float32(self, sqlite_store):
        await seed(sqlite_store)
        embeddings = dict(await sqlite_store._load_embeddings())
        assert embeddings["Bob"].dtype == np.float32
        assert embeddings["Bob"].shape == (DIMENSION,)

    @pytest.mark.asyncio
    async def test_transactions_do_not_interleave(self, sqlite_store):
        await seed(sqlite_store)
        entered = asyncio.Event()

        async def hold_open_update():
            async with sqlite_store._cursor() as cursor:
                await cursor.execute("UPDATE entities SET entity_type = 'ghost' WHERE name = 'Alice'")
                entered.set()
                await asyncio.Event().wait()

        writer = asyncio.create_task(hold_open_update())
        await entered.wait()
        reader = asyncio.create_task(sqlite_store.fetch_entities(["Alice"]))
        await asyncio.sleep(0.05)
        assert not reader.done()

        writer.cancel()
        with pytest.raises(asyncio.CancelledError):
            await writer

        # The cancelled update is rolled back before the reader runs
        rows = await reader
        assert rows[0]["entityType"] == "person"

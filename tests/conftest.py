"""
Shared fixtures for the Memento test suite.
"""

import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

from memento.storage.sqlite_store import SQLiteGraphStore
from tests.fakes import DIMENSION, HashEmbedder


@pytest.fixture
def embedder():
    """Deterministic embedding provider."""
    return HashEmbedder(dimension=DIMENSION)


@pytest_asyncio.fixture
async def sqlite_store():
    """Initialized SQLite store in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SQLiteGraphStore(str(Path(tmpdir) / "test.db"), dimension=DIMENSION)
        await store.initialize()
        yield store
        await store.close()

"""
FAISS-based vector index for the local graph store.

Vectors are L2-normalized on the way in so inner product equals cosine
similarity. Replaced entries are soft deleted and the index is compacted
once deletions pass a threshold.
"""

import logging
from typing import Dict, List, Sequence, Set, Tuple

import faiss
import numpy as np

logger = logging.getLogger(__name__)


def _normalize(embedding: Sequence[float]) -> np.ndarray:
    vector = np.asarray(embedding, dtype=np.float32)
    norm = np.linalg.norm(vector)
    if norm > 0:
        return vector / norm
    return vector


class VectorIndex:
    """
    In-memory ANN index keyed by entity name.

    Uses IndexFlatIP, so results are exact; the index is rebuilt from the
    persisted embeddings whenever the store starts.
    """

    def __init__(self, dimension: int = 384, deletion_threshold: float = 0.2):
        """
        Initialize vector index.

        Args:
            dimension: Embedding dimension
            deletion_threshold: Compact when this fraction is soft deleted
        """
        self.dimension = dimension
        self.deletion_threshold = deletion_threshold
        self.index = faiss.IndexFlatIP(dimension)

        self.id_map: Dict[int, str] = {}  # FAISS idx -> entity name
        self.reverse_map: Dict[str, int] = {}  # entity name -> FAISS idx
        self.deleted_slots: Set[int] = set()

    @property
    def size(self) -> int:
        """Number of live vectors."""
        return self.index.ntotal - len(self.deleted_slots)

    @property
    def total_size(self) -> int:
        """Number of vectors including soft-deleted ones."""
        return self.index.ntotal

    @property
    def deletion_ratio(self) -> float:
        total = self.total_size
        if total == 0:
            return 0.0
        return len(self.deleted_slots) / total

    def add(self, name: str, embedding: Sequence[float]):
        """Add or replace the vector for an entity."""
        vector = _normalize(embedding)
        if vector.shape[0] != self.dimension:
            raise ValueError(
                f"Embedding dimension {vector.shape[0]} does not match index dimension {self.dimension}"
            )

        if name in self.reverse_map:
            self.remove(name)

        idx = self.total_size
        self.index.add(vector.reshape(1, -1))
        self.id_map[idx] = name
        self.reverse_map[name] = idx

    def remove(self, name: str) -> bool:
        """Soft delete the vector for an entity."""
        if name not in self.reverse_map:
            return False

        self.deleted_slots.add(self.reverse_map.pop(name))

        if self.deletion_ratio > self.deletion_threshold:
            logger.info(
                f"Deletion threshold exceeded ({self.deletion_ratio:.1%}), "
                f"triggering compaction"
            )
            self._compact()

        return True

    def _compact(self):
        """Rebuild the index without soft-deleted vectors."""
        remaining: List[Tuple[str, np.ndarray]] = []
        for name, idx in sorted(self.reverse_map.items(), key=lambda item: item[1]):
            remaining.append((name, self.index.reconstruct(int(idx))))

        self._rebuild(remaining)

    def _rebuild(self, entries: List[Tuple[str, np.ndarray]]):
        self.index = faiss.IndexFlatIP(self.dimension)
        self.id_map = {}
        self.reverse_map = {}
        self.deleted_slots = set()

        if entries:
            self.index.add(np.vstack([vec for _, vec in entries]).astype(np.float32))
            for idx, (name, _) in enumerate(entries):
                self.id_map[idx] = name
                self.reverse_map[name] = idx

    def rebuild_from_embeddings(self, embeddings: List[Tuple[str, Sequence[float]]]):
        """Rebuild the whole index from (name, embedding) pairs."""
        self._rebuild([(name, _normalize(embedding)) for name, embedding in embeddings])
        logger.info(f"Vector index rebuilt with {len(embeddings)} embeddings")

    def search(
        self,
        query_embedding: Sequence[float],
        top_k: int = 10,
        min_score: float = float("-inf")
    ) -> List[Tuple[str, float]]:
        """
        Search for similar vectors.

        Returns:
            List of (name, score) tuples sorted by score descending
        """
        if self.size == 0 or top_k <= 0:
            return []

        query = _normalize(query_embedding)
        if query.shape[0] != self.dimension:
            raise ValueError(
                f"Query dimension {query.shape[0]} does not match index dimension {self.dimension}"
            )

        # Over-fetch to cover soft-deleted slots
        fetch_k = min(top_k + len(self.deleted_slots), self.total_size)
        scores, indices = self.index.search(query.reshape(1, -1), fetch_k)

        results = []
        for idx, score in zip(indices[0], scores[0]):
            if idx < 0:  # FAISS pads with -1
                continue
            if int(idx) in self.deleted_slots:
                continue
            name = self.id_map.get(int(idx))
            if name is None:
                continue
            similarity = float(score)
            if similarity < min_score:
                continue
            results.append((name, similarity))
            if len(results) >= top_k:
                break

        return results

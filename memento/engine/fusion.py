"""
Reciprocal Rank Fusion for Memento.

Each ranked list contributes ``1 / (k + position + 1)`` per entry, where
position is zero-based. Raw similarity and keyword scores play no part in
the fused score; only rank does. An identifier present in both lists gets
the sum of its two contributions, so for any k > 0 agreement between the
two signals always outranks either signal alone.

Ordering is fused score descending. Ties go to the identifier seen first
during the merge: the vector list is walked before the lexical list, each
from its top, so every identifier carries a first-seen ordinal and the
sort key is ``(-fused_score, ordinal)``.
"""

import logging
from typing import Dict, List, Optional, Sequence

from memento.models.search import (
    BothCandidate,
    Candidate,
    LexicalOnlyCandidate,
    RankedCandidate,
    VectorOnlyCandidate,
)

logger = logging.getLogger(__name__)

DEFAULT_RRF_K = 60


def reciprocal_rank(position: int, k: int = DEFAULT_RRF_K) -> float:
    """Positional RRF contribution for a zero-based position."""
    return 1.0 / (k + position + 1)


class _Accumulator:
    __slots__ = ("id", "entity_type", "ordinal", "fused_score", "vector_score", "bm25_score")

    def __init__(self, candidate_id: str, entity_type: str, ordinal: int):
        self.id = candidate_id
        self.entity_type = entity_type
        self.ordinal = ordinal
        self.fused_score = 0.0
        self.vector_score: Optional[float] = None
        self.bm25_score: Optional[float] = None

    def to_candidate(self) -> Candidate:
        if self.vector_score is not None and self.bm25_score is not None:
            return BothCandidate(
                id=self.id,
                entity_type=self.entity_type,
                fused_score=self.fused_score,
                vector_score=self.vector_score,
                bm25_score=self.bm25_score,
            )
        if self.vector_score is not None:
            return VectorOnlyCandidate(
                id=self.id,
                entity_type=self.entity_type,
                fused_score=self.fused_score,
                vector_score=self.vector_score,
            )
        return LexicalOnlyCandidate(
            id=self.id,
            entity_type=self.entity_type,
            fused_score=self.fused_score,
            bm25_score=self.bm25_score,
        )


class RankFusionEngine:
    """Combines the vector and lexical rankings into one fused list."""

    def __init__(self, k: int = DEFAULT_RRF_K):
        """
        Args:
            k: RRF constant; must be positive
        """
        if k <= 0:
            raise ValueError(f"RRF constant k must be positive, got {k}")
        self.k = k

    def fuse(
        self,
        vector_results: Sequence[RankedCandidate],
        lexical_results: Sequence[RankedCandidate],
        limit: int
    ) -> List[Candidate]:
        """
        Fuse two rank-ordered candidate lists.

        Args:
            vector_results: Vector ranker output, best first
            lexical_results: Lexical ranker output, best first
            limit: Maximum number of fused candidates to return

        Returns:
            Fused candidates, best first, at most ``limit`` long
        """
        merged: Dict[str, _Accumulator] = {}

        for position, result in enumerate(vector_results):
            entry = merged.get(result.id)
            if entry is None:
                entry = merged[result.id] = _Accumulator(result.id, result.entity_type, len(merged))
            elif entry.vector_score is not None:
                # Repeated id within one list: first (best) position counts
                continue
            entry.vector_score = result.score
            entry.fused_score += reciprocal_rank(position, self.k)

        for position, result in enumerate(lexical_results):
            entry = merged.get(result.id)
            if entry is None:
                entry = merged[result.id] = _Accumulator(result.id, result.entity_type, len(merged))
            elif entry.bm25_score is not None:
                continue
            entry.bm25_score = result.score
            entry.fused_score += reciprocal_rank(position, self.k)

        ordered = sorted(merged.values(), key=lambda e: (-e.fused_score, e.ordinal))
        fused = [entry.to_candidate() for entry in ordered[:max(limit, 0)]]

        logger.debug(
            f"RRF(k={self.k}): {len(vector_results)} vector + {len(lexical_results)} lexical "
            f"-> {len(merged)} merged, {len(fused)} kept"
        )
        return fused

"""
Tests for Reciprocal Rank Fusion.
"""

import pytest
from pydantic import TypeAdapter, ValidationError

from memento.engine.fusion import RankFusionEngine, reciprocal_rank
from memento.models.search import (
    BothCandidate,
    Candidate,
    LexicalOnlyCandidate,
    RankedCandidate,
    VectorOnlyCandidate,
)


def ranked(*ids, score=0.9):
    return [RankedCandidate(i, "thing", score) for i in ids]


class TestReciprocalRank:
    """Tests for the positional contribution."""

    def test_first_position(self):
        assert reciprocal_rank(0, 60) == pytest.approx(1 / 61)

    def test_later_position(self):
        assert reciprocal_rank(2, 60) == pytest.approx(1 / 63)

    def test_rejects_non_positive_k(self):
        with pytest.raises(ValueError):
            RankFusionEngine(k=0)
        with pytest.raises(ValueError):
            RankFusionEngine(k=-5)


class TestFuse:
    """Tests for the fused ordering."""

    def test_end_to_end_ordering(self):
        """Vector [A, B, C] and lexical [B, D] fuse to B, A, D, C."""
        engine = RankFusionEngine(k=60)
        fused = engine.fuse(ranked("A", "B", "C"), ranked("B", "D", score=2.0), limit=10)

        assert [c.id for c in fused] == ["B", "A", "D", "C"]
        assert fused[0].fused_score == pytest.approx(1 / 62 + 1 / 61)
        assert fused[1].fused_score == pytest.approx(1 / 61)
        assert fused[2].fused_score == pytest.approx(1 / 62)
        assert fused[3].fused_score == pytest.approx(1 / 63)

    def test_candidate_kinds(self):
        engine = RankFusionEngine(k=60)
        fused = engine.fuse(ranked("A", "B", "C"), ranked("B", "D", score=2.0), limit=10)
        by_id = {c.id: c for c in fused}

        assert isinstance(by_id["B"], BothCandidate)
        assert by_id["B"].vector_score == 0.9
        assert by_id["B"].bm25_score == 2.0
        assert isinstance(by_id["A"], VectorOnlyCandidate)
        assert isinstance(by_id["D"], LexicalOnlyCandidate)
        assert by_id["D"].bm25_score == 2.0

    def test_tie_goes_to_first_seen(self):
        """Equal fused scores keep vector-list entries ahead of lexical-only ones."""
        engine = RankFusionEngine(k=60)
        fused = engine.fuse(ranked("A"), ranked("D"), limit=10)

        assert fused[0].fused_score == fused[1].fused_score
        assert [c.id for c in fused] == ["A", "D"]

    def test_both_lists_outrank_single_list(self):
        """Presence in both lists beats the best single-list position."""
        for k in (1, 10, 60, 1000):
            engine = RankFusionEngine(k=k)
            fused = engine.fuse(ranked("solo", "pair"), ranked("x", "y", "pair"), limit=10)
            assert fused[0].id == "pair"

    def test_exact_score_for_both(self):
        engine = RankFusionEngine(k=10)
        fused = engine.fuse(ranked("a", "b", "c"), ranked("z", "c"), limit=10)
        c = next(item for item in fused if item.id == "c")
        assert c.fused_score == pytest.approx(1 / 13 + 1 / 12)

    def test_deterministic(self):
        engine = RankFusionEngine(k=60)
        vector = ranked("A", "B", "C", "E")
        lexical = ranked("F", "B", "A")
        first = engine.fuse(vector, lexical, limit=10)
        for _ in range(5):
            assert engine.fuse(vector, lexical, limit=10) == first

    def test_truncates_to_limit(self):
        engine = RankFusionEngine(k=60)
        fused = engine.fuse(ranked("A", "B", "C"), ranked("B", "D"), limit=2)
        assert [c.id for c in fused] == ["B", "A"]

    def test_zero_limit(self):
        engine = RankFusionEngine(k=60)
        assert engine.fuse(ranked("A"), ranked("B"), limit=0) == []

    def test_empty_lists(self):
        engine = RankFusionEngine(k=60)
        assert engine.fuse([], [], limit=10) == []

    def test_repeated_id_counts_once(self):
        engine = RankFusionEngine(k=60)
        fused = engine.fuse(ranked("A", "A", "B"), [], limit=10)
        assert [c.id for c in fused] == ["A", "B"]
        assert fused[0].fused_score == pytest.approx(1 / 61)
        assert fused[1].fused_score == pytest.approx(1 / 63)


class TestCandidateVariant:
    """Tests for the tagged candidate models."""

    def test_discriminated_parse(self):
        adapter = TypeAdapter(Candidate)
        candidate = adapter.validate_python({
            "kind": "both",
            "id": "A",
            "entityType": "person",
            "fusedScore": 0.03,
            "vectorScore": 0.8,
            "bm25Score": 2.0,
        })
        assert isinstance(candidate, BothCandidate)

    def test_both_requires_both_scores(self):
        with pytest.raises(ValidationError):
            BothCandidate(id="A", entity_type="person", fused_score=0.1, vector_score=0.5)

    def test_candidates_are_frozen(self):
        candidate = VectorOnlyCandidate(id="A", entity_type="person", fused_score=0.1, vector_score=0.5)
        with pytest.raises(ValidationError):
            candidate.fused_score = 1.0

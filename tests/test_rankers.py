"""
Tests for the vector and lexical rankers.
"""

import pytest

from memento.engine.lexical_ranker import LexicalRanker, lexical_score
from memento.engine.vector_ranker import VectorRanker
from memento.models.search import RankedCandidate
from tests.fakes import ScriptedStore


class TestLexicalScore:
    """Tests for the weighted substring score."""

    def test_name_only(self):
        assert lexical_score("TeamBadass", ["founded in 2020"], "TeamBadass") == 2.0

    def test_observations_only(self):
        observations = ["likes TeamBadass", "TeamBadass fan", "met TeamBadass", "unrelated"]
        assert lexical_score("Alice", observations, "TeamBadass") == 2.5

    def test_name_and_observations(self):
        observations = ["TeamBadass ships", "TeamBadass owns search"]
        assert lexical_score("TeamBadass", observations, "TeamBadass") == 3.0

    def test_single_observation(self):
        assert lexical_score("Alice", ["works with Bob"], "Bob") == 1.5

    def test_no_match(self):
        assert lexical_score("Alice", ["works with Bob"], "Carol") is None

    def test_case_sensitive(self):
        assert lexical_score("TeamBadass", [], "teambadass") is None

    def test_substring_match(self):
        assert lexical_score("TeamBadass", [], "Bad") == 2.0


class TestLexicalRanker:
    """Tests for keyword candidate ordering."""

    @pytest.mark.asyncio
    async def test_orders_by_score_stably(self):
        store = ScriptedStore(keyword_results=[
            RankedCandidate("low", "t", 1.5),
            RankedCandidate("high", "t", 3.0),
            RankedCandidate("tie-1", "t", 2.0),
            RankedCandidate("tie-2", "t", 2.0),
        ])
        results = await LexicalRanker(store).rank("q", 10)
        assert [r.id for r in results] == ["high", "tie-1", "tie-2", "low"]

    @pytest.mark.asyncio
    async def test_zero_count_skips_store(self):
        store = ScriptedStore(keyword_results=[RankedCandidate("a", "t", 2.0)])
        assert await LexicalRanker(store).rank("q", 0) == []
        assert "keyword_candidates" not in store.calls


class TestVectorRanker:
    """Tests for semantic candidate generation."""

    @pytest.mark.asyncio
    async def test_applies_floor(self):
        store = ScriptedStore(vector_results=[
            RankedCandidate("a", "t", 0.9),
            RankedCandidate("b", "t", 0.6),
            RankedCandidate("c", "t", 0.3),
        ])
        results = await VectorRanker(store).rank([0.1], 10, min_similarity=0.6)
        assert [r.id for r in results] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_no_floor(self):
        store = ScriptedStore(vector_results=[
            RankedCandidate("a", "t", 0.2),
            RankedCandidate("b", "t", 0.1),
        ])
        results = await VectorRanker(store).rank([0.1], 10)
        assert [r.id for r in results] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_truncates(self):
        store = ScriptedStore(vector_results=[RankedCandidate(str(i), "t", 1 - i / 10) for i in range(5)])
        results = await VectorRanker(store).rank([0.1], 2)
        assert [r.id for r in results] == ["0", "1"]

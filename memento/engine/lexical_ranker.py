"""
Lexical ranker for Memento.

Scores entities by case-sensitive substring matches of the raw query
text against the entity name and each of its observations:

    score = (2.0 if name matches else 1.0) + 0.5 * matching observations

An entity is only a candidate when its name or at least one observation
matches, so the lowest possible score is 1.5 for a single observation
hit and any name match scores at least 2.0.
"""

import logging
from typing import List, Optional, Sequence

from memento.models.search import RankedCandidate
from memento.storage.base import GraphStore

logger = logging.getLogger(__name__)

NAME_MATCH_BOOST = 2.0
NO_NAME_MATCH_BASE = 1.0
OBSERVATION_MATCH_WEIGHT = 0.5


def lexical_score(
    name: str,
    observations: Sequence[str],
    query: str
) -> Optional[float]:
    """
    Weighted substring score for one entity.

    Returns:
        The score, or None when neither the name nor any observation matches
    """
    name_matched = query in name
    observation_matches = sum(1 for observation in observations if query in observation)

    if not name_matched and observation_matches == 0:
        return None

    name_boost = NAME_MATCH_BOOST if name_matched else NO_NAME_MATCH_BASE
    return name_boost + OBSERVATION_MATCH_WEIGHT * observation_matches


class LexicalRanker:
    """Keyword candidate generation backed by the graph store."""

    def __init__(self, store: GraphStore):
        self.store = store

    async def rank(self, text: str, count: int) -> List[RankedCandidate]:
        """
        Return up to ``count`` keyword candidates, best first.

        The sort is stable, so candidates with equal scores keep the
        order the store returned them in.
        """
        if count <= 0:
            return []

        candidates = await self.store.keyword_candidates(text, count)
        ranked = sorted(candidates, key=lambda c: -c.score)[:count]

        logger.debug(f"Lexical ranker: {len(ranked)} candidates for {text!r}")
        return ranked

"""
Observation field codec.

Observations are persisted as a compact JSON array of strings, the same
text form the graph store keeps on each entity node.
"""

import logging
from typing import List, Optional, Sequence, Union

import orjson

from memento.errors import ObservationParseFailure

logger = logging.getLogger(__name__)


def serialize_observations(observations: Sequence[str]) -> str:
    """Encode observations as a JSON array string."""
    return orjson.dumps(list(observations)).decode("utf-8")


def decode_observations(raw: Union[str, bytes, List[str], None]) -> List[str]:
    """
    Strictly decode a serialized observation field.

    Raises:
        ObservationParseFailure: if the payload is not a JSON array of strings
    """
    if raw is None or raw == "" or raw == b"":
        return []
    if isinstance(raw, list):
        # Stores with native list properties hand back the array itself
        if not all(isinstance(v, str) for v in raw):
            raise ObservationParseFailure("expected a list of strings")
        return list(raw)
    try:
        value = orjson.loads(raw)
    except (orjson.JSONDecodeError, TypeError) as e:
        raise ObservationParseFailure(f"invalid observation payload: {e}") from e

    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ObservationParseFailure(
            f"expected a list of strings, got {type(value).__name__}"
        )
    return value


def parse_observations(
    raw: Union[str, bytes, List[str], None],
    entity_name: Optional[str] = None
) -> List[str]:
    """Decode observations, substituting an empty list on corruption."""
    try:
        return decode_observations(raw)
    except ObservationParseFailure as e:
        logger.warning(f"Failed to parse observations for entity {entity_name!r}: {e}")
        return []

"""
Result hydration for Memento.
Expands fused candidate identifiers into full entity and relation records.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from memento.errors import ObservationParseFailure
from memento.models.entity import Entity, Relation
from memento.storage.base import GraphStore
from memento.utils.aio import gather_or_cancel
from memento.utils.dates import format_timestamp
from memento.utils.observations import decode_observations

logger = logging.getLogger(__name__)


def _stored_int(value: Any) -> Optional[int]:
    """Coerce a stored integer field, dropping values that are not numbers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


class ResultHydrator:
    """
    Loads the currently visible records for a list of entity names.

    Entities come back in the order the names were given, not in store
    order. Relations are limited to pairs whose endpoints were both
    hydrated.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    async def hydrate(self, names: Sequence[str]) -> Tuple[List[Entity], List[Relation]]:
        """
        Hydrate entity names into entities and the relations among them.

        Raises:
            UpstreamQueryFailure: if either store call fails
        """
        ordered_names = list(dict.fromkeys(names))
        if not ordered_names:
            return [], []

        entity_rows, relation_rows = await gather_or_cancel(
            self.store.fetch_entities(ordered_names),
            self.store.fetch_relations(ordered_names),
        )

        by_name: Dict[str, Entity] = {}
        for row in entity_rows:
            if row["name"] not in by_name:
                by_name[row["name"]] = self._to_entity(row)

        entities = [by_name[name] for name in ordered_names if name in by_name]

        relations = [
            Relation.model_validate({
                "from": row["fromName"],
                "to": row["toName"],
                "relationType": row["relationType"],
            })
            for row in relation_rows
            if row["fromName"] in by_name and row["toName"] in by_name
        ]

        logger.debug(
            f"Hydrated {len(entities)}/{len(ordered_names)} entities, {len(relations)} relations"
        )
        return entities, relations

    def _to_entity(self, row: Dict[str, Any]) -> Entity:
        """Build an Entity, tolerating a corrupt observations field."""
        try:
            observations = decode_observations(row.get("observations"))
        except ObservationParseFailure as e:
            logger.warning(f"Failed to parse observations for entity {row['name']!r}: {e}")
            observations = []

        return Entity(
            name=row["name"],
            entity_type=row["entityType"],
            observations=observations,
            id=row.get("id"),
            version=_stored_int(row.get("version")),
            created_at=_stored_int(row.get("createdAt")),
            updated_at=_stored_int(row.get("updatedAt")),
            valid_from=_stored_int(row.get("validFrom")),
            valid_to=_stored_int(row.get("validTo")),
            created=format_timestamp(row.get("createdAt")),
            updated=format_timestamp(row.get("updatedAt")),
        )

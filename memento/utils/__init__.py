"""
Utility modules for Memento.
"""

from memento.utils.aio import gather_or_cancel
from memento.utils.dates import format_timestamp, now_ms
from memento.utils.observations import (
    decode_observations,
    parse_observations,
    serialize_observations,
)

__all__ = [
    "gather_or_cancel",
    "format_timestamp",
    "now_ms",
    "decode_observations",
    "parse_observations",
    "serialize_observations",
]

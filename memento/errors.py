"""
Exception hierarchy for Memento.

Fatal collaborator failures carry the upstream status and message so the
transport layer can surface one clear error.
"""

from typing import Optional


class MementoError(Exception):
    """Base class for all Memento errors."""


class UpstreamQueryFailure(MementoError):
    """The graph store returned a non-success status or an unparsable payload."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        self.message = message
        if status is not None:
            super().__init__(f"Graph query failed ({status}): {message}")
        else:
            super().__init__(f"Graph query failed: {message}")


class EmbeddingFailure(MementoError):
    """The embedding provider failed or returned a malformed payload."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        self.message = message
        if status is not None:
            super().__init__(f"Embedding failed ({status}): {message}")
        else:
            super().__init__(f"Embedding failed: {message}")


class ObservationParseFailure(MementoError):
    """A serialized observation field could not be decoded."""

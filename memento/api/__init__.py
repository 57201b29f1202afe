"""
API layer for Memento.
FastAPI routes for search and graph operations.
"""

from memento.api.entities import router as entities_router
from memento.api.search import router as search_router

__all__ = [
    "entities_router",
    "search_router",
]

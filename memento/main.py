"""
Memento FastAPI Application Entry Point.

Hybrid semantic search over a temporal knowledge graph: vector similarity
and keyword matches fused with Reciprocal Rank Fusion.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from memento import __version__
from memento.api.dependencies import get_db_manager
from memento.api.entities import router as entities_router
from memento.api.search import router as search_router
from memento.config import settings
from memento.errors import EmbeddingFailure, MementoError, UpstreamQueryFailure

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

_startup_time: Optional[float] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store on startup and release connections on shutdown."""
    global _startup_time

    startup_start = time.perf_counter()
    logger.info("Starting Memento...")

    db_manager = get_db_manager()
    await db_manager.startup()

    _startup_time = time.time()
    logger.info(f"Memento ready in {(time.perf_counter() - startup_start) * 1000:.0f}ms")

    yield

    logger.info("Shutting down Memento...")
    await db_manager.close()
    logger.info("Memento shutdown complete")


app = FastAPI(
    title="Memento",
    description="""
## Hybrid Search for Knowledge Graph Memory

Entities carry a name, a type and free-text observations. Search combines
two rankings:

- **Vector**: approximate nearest neighbours over entity embeddings
- **Keyword**: substring matches on names and observations

and fuses them with Reciprocal Rank Fusion:

```
fused(id) = sum over lists of 1 / (k + position + 1),  k = 60
```
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers."""
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = (time.perf_counter() - start_time) * 1000
    response.headers["X-Process-Time-Ms"] = f"{process_time:.2f}"
    return response


# ==================== Exception Handlers ====================

@app.exception_handler(UpstreamQueryFailure)
@app.exception_handler(EmbeddingFailure)
async def upstream_exception_handler(request: Request, exc: MementoError):
    """Collaborator failures surface as one clear gateway error."""
    logger.error(f"Upstream failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={
            "detail": str(exc),
            "status": getattr(exc, "status", None)
        }
    )


@app.exception_handler(asyncio.TimeoutError)
async def timeout_exception_handler(request: Request, exc: asyncio.TimeoutError):
    logger.error(f"Search timed out after {settings.search_timeout}s on {request.url.path}")
    return JSONResponse(
        status_code=504,
        content={"detail": f"Search timed out after {settings.search_timeout}s"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error": str(exc) if settings.debug else "An unexpected error occurred"
        }
    )


# Include routers
app.include_router(search_router)
app.include_router(entities_router)


# ==================== Health & Utility Endpoints ====================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: float
    uptime_seconds: float
    components: dict


@app.get("/", tags=["Utility"])
async def root():
    """Welcome endpoint with API overview."""
    return {
        "name": "Memento",
        "version": __version__,
        "description": "Hybrid semantic search over a knowledge graph",
        "docs": "/docs",
        "endpoints": {
            "search": {
                "hybrid": "/search/hybrid",
                "vector": "/search/vector",
                "semantic": "/search/semantic"
            },
            "entities": {
                "create": "/entities",
                "open": "/entities/open",
                "search": "/entities/search",
                "delete": "/entities/delete"
            },
            "relations": "/relations",
            "health": "/health"
        }
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Report store and embedding provider status."""
    components = {}

    try:
        db_manager = get_db_manager()
        components["store"] = {
            "status": "healthy",
            "backend": settings.store_backend
        }
        if db_manager.embedder is None:
            components["embedding"] = {"status": "unavailable"}
        else:
            components["embedding"] = {
                "status": "healthy",
                "provider": settings.embedding_provider,
                "dimension": db_manager.embedder.dimension
            }
    except Exception as e:
        components["system"] = {"status": "unhealthy", "error": str(e)}

    unhealthy = [
        name for name, info in components.items()
        if info.get("status") == "unhealthy"
    ]
    if unhealthy:
        status = "unhealthy"
    elif any(info.get("status") == "unavailable" for info in components.values()):
        status = "degraded"
    else:
        status = "healthy"

    uptime = time.time() - _startup_time if _startup_time else 0
    return HealthResponse(
        status=status,
        timestamp=time.time(),
        uptime_seconds=round(uptime, 1),
        components=components
    )


def main():
    import uvicorn
    uvicorn.run(
        "memento.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )


if __name__ == "__main__":
    main()

"""
Embedding providers for Memento.

Two providers share one async interface: VoyageAI over HTTP (the
default, 2048-dimension voyage-3-large) and a local sentence-transformers
model for offline use.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

import httpx

from memento.config import Settings
from memento.errors import EmbeddingFailure

logger = logging.getLogger(__name__)


class EmbeddingProvider(ABC):
    """Text to vector."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Embedding dimension."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed a single text."""

    @abstractmethod
    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed several texts; output order matches input order."""

    async def close(self):
        """Release provider resources."""


class VoyageEmbeddingService(EmbeddingProvider):
    """VoyageAI embeddings API client."""

    def __init__(
        self,
        api_key: str,
        model: str = "voyage-3-large",
        dimensions: int = 2048,
        base_url: str = "https://api.voyageai.com/v1/embeddings",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.model = model
        self._dimensions = dimensions
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            transport=transport,
        )

    @property
    def dimension(self) -> int:
        return self._dimensions

    async def _request(self, payload_input: Any) -> List[Any]:
        try:
            response = await self._client.post(
                self.base_url,
                json={
                    "input": payload_input,
                    "model": self.model,
                    "output_dimension": self._dimensions,
                },
            )
        except httpx.HTTPError as e:
            raise EmbeddingFailure(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise EmbeddingFailure(response.text, status=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise EmbeddingFailure(f"unparsable response body: {e}", status=response.status_code) from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list) or not data:
            raise EmbeddingFailure("Invalid response from VoyageAI API: missing data")
        return data

    @staticmethod
    def _vector(item: Any) -> List[float]:
        embedding = item.get("embedding") if isinstance(item, dict) else None
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingFailure("Invalid response from VoyageAI API: missing embedding")
        try:
            return [float(x) for x in embedding]
        except (TypeError, ValueError) as e:
            raise EmbeddingFailure(f"Invalid response from VoyageAI API: {e}") from e

    async def embed(self, text: str) -> List[float]:
        data = await self._request(text)
        return self._vector(data[0])

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        texts = list(texts)
        if not texts:
            return []

        data = await self._request(texts)
        if len(data) != len(texts):
            raise EmbeddingFailure(
                f"Invalid response from VoyageAI API: expected {len(texts)} embeddings, got {len(data)}"
            )

        # The API tags each item with its input index
        if all(isinstance(item, dict) and isinstance(item.get("index"), int) for item in data):
            data = sorted(data, key=lambda item: item["index"])
        return [self._vector(item) for item in data]

    async def close(self):
        await self._client.aclose()


class LocalEmbeddingEngine(EmbeddingProvider):
    """
    Embedding generation using sentence-transformers.
    The model is loaded lazily on first use; encoding runs in a worker thread.
    """

    def __init__(
        self,
        model_name: str = "all-MiniLM-L6-v2",
        device: Optional[str] = None,
        cache_folder: Optional[str] = None
    ):
        """
        Initialize embedding engine.

        Args:
            model_name: Name of the sentence-transformer model
            device: Device to run on; None lets sentence-transformers pick
            cache_folder: Folder to cache model files
        """
        self.model_name = model_name
        self._device = device
        self._cache_folder = cache_folder
        self._model = None

        self._known_dimensions = {
            "all-MiniLM-L6-v2": 384,
            "all-MiniLM-L12-v2": 384,
            "all-mpnet-base-v2": 768,
            "paraphrase-MiniLM-L6-v2": 384,
            "paraphrase-mpnet-base-v2": 768,
        }

    @property
    def model(self):
        """Lazy load the model."""
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model: {self.model_name}")
            try:
                self._model = SentenceTransformer(
                    self.model_name,
                    device=self._device,
                    cache_folder=self._cache_folder
                )
            except Exception as e:
                raise EmbeddingFailure(f"failed to load model {self.model_name}: {e}") from e
            logger.info(f"Model loaded. Dimension: {self._model.get_sentence_embedding_dimension()}")
        return self._model

    @property
    def dimension(self) -> int:
        if self._model is not None:
            return self._model.get_sentence_embedding_dimension()
        return self._known_dimensions.get(self.model_name, 384)

    def _encode(self, texts: List[str]) -> List[List[float]]:
        try:
            embeddings = self.model.encode(
                texts,
                normalize_embeddings=True,
                convert_to_numpy=True
            )
        except EmbeddingFailure:
            raise
        except Exception as e:
            raise EmbeddingFailure(f"{type(e).__name__}: {e}") from e
        return embeddings.astype("float32").tolist()

    async def embed(self, text: str) -> List[float]:
        vectors = await asyncio.to_thread(self._encode, [text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        texts = list(texts)
        if not texts:
            return []
        return await asyncio.to_thread(self._encode, texts)


def create_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Build the provider selected by ``settings.embedding_provider``."""
    if settings.embedding_provider == "voyage":
        if not settings.voyage_api_key:
            raise ValueError("MEMENTO_VOYAGE_API_KEY is required for the voyage embedding provider")
        return VoyageEmbeddingService(
            api_key=settings.voyage_api_key,
            model=settings.voyage_model,
            dimensions=settings.voyage_dimension,
            base_url=settings.voyage_base_url,
            timeout=settings.request_timeout,
        )
    if settings.embedding_provider == "local":
        return LocalEmbeddingEngine(model_name=settings.embedding_model)
    raise ValueError(f"Unknown embedding provider: {settings.embedding_provider}")

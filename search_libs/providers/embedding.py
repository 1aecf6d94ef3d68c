"""Embedding providers: text to fixed-dimension float vector.

Two backends are available:
- ``OpenAIEmbeddingProvider`` calls the OpenAI embeddings API.
- ``EmbeddingServiceProvider`` calls an internal embedding service over HTTP
  (``POST /api/v1/embed``).

Both clean the input text first, so identical cleaned input always maps to
the same request.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
import openai
import structlog

from ..common.config import SearchConfig
from ..common.errors import EmbeddingProviderError
from .text_cleaner import clean_text

logger = structlog.get_logger("providers.embedding")


class EmbeddingProvider(ABC):
    """Abstract embedding provider."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed ``text`` and return its vector.

        Raises ``EmbeddingProviderError`` when no vector can be produced.
        """
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embeddings API client."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.model = model
        self.client = client or openai.AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def embed(self, text: str) -> List[float]:
        cleaned = clean_text(text).strip()
        if not cleaned:
            raise EmbeddingProviderError("Cannot embed empty text")

        try:
            response = await self.client.embeddings.create(input=cleaned, model=self.model)
        except openai.OpenAIError as e:
            logger.error("Embedding request failed", model=self.model, error=str(e))
            raise EmbeddingProviderError(f"OpenAI embedding failed: {e}") from e

        if not response.data:
            raise EmbeddingProviderError("OpenAI returned no embedding")
        return list(response.data[0].embedding)

    async def close(self) -> None:
        await self.client.close()


class EmbeddingServiceProvider(EmbeddingProvider):
    """HTTP client for the internal embedding service.

    A fresh ``httpx.AsyncClient`` is opened per call so no connection state
    is shared across requests.
    """

    def __init__(
        self,
        service_url: str,
        model: str = "default",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.service_url = service_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport

    async def embed(self, text: str) -> List[float]:
        cleaned = clean_text(text).strip()
        if not cleaned:
            raise EmbeddingProviderError("Cannot embed empty text")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.service_url}/api/v1/embed",
                    json={
                        "items": [{"text": cleaned}],
                        "model": self.model
                    }
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error("Embedding service call failed", url=self.service_url, error=str(e))
            raise EmbeddingProviderError(f"Embedding service request failed: {e}") from e

        vectors = data.get("vectors", [])
        if not vectors:
            raise EmbeddingProviderError("Embedding service returned no vectors")
        return [float(value) for value in vectors[0]]


def create_embedding_provider(config: SearchConfig) -> EmbeddingProvider:
    """Create the embedding provider selected by ``search_embedding_backend``."""
    backend = config.search_embedding_backend
    if backend == "openai":
        return OpenAIEmbeddingProvider(
            model=config.search_embedding_model,
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            timeout=config.search_provider_timeout,
        )
    if backend == "service":
        return EmbeddingServiceProvider(
            service_url=config.search_embedding_service_url,
            timeout=config.search_provider_timeout,
        )
    raise ValueError(f"Unsupported embedding backend: {backend}")

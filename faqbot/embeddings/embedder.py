# FILE: faqbot/embeddings/embedder.py
"""
Query embedding.

The Embedder protocol is what the retriever depends on; OpenAIEmbedder is the
production implementation. Tests pass their own.
"""

import asyncio
import logging
from typing import List, Optional, Protocol

from openai import AsyncOpenAI

from faqbot import config
from faqbot.errors import EmbeddingError

logger = logging.getLogger(__name__)

# Rough estimate: 1 token ≈ 4 chars, model limit ~8191 tokens
MAX_EMBED_CHARS = 30000


class Embedder(Protocol):
    async def embed(self, text: str) -> List[float]:
        ...


class OpenAIEmbedder:
    """Embeds text with the OpenAI embeddings endpoint."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = config.EMBEDDING_MODEL,
        timeout_seconds: float = config.LLM_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.model = model
        self.timeout_seconds = timeout_seconds

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            from faqbot.llm.clients import get_async_client
            self._client = get_async_client()
        return self._client

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingError("cannot embed empty text")

        if len(text) > MAX_EMBED_CHARS:
            text = text[:MAX_EMBED_CHARS]

        try:
            response = await asyncio.wait_for(
                self._get_client().embeddings.create(model=self.model, input=text),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingError(f"embedding timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            logger.error("[embeddings] Generation error: %s", e)
            raise EmbeddingError(str(e)) from e

        try:
            vector = list(response.data[0].embedding)
        except (AttributeError, IndexError, TypeError) as e:
            raise EmbeddingError("embedding response had no vector") from e

        logger.debug("[embeddings] model=%s dim=%d", self.model, len(vector))
        return vector

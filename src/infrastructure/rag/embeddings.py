"""
infrastructure.rag.embeddings - EmbeddingPort adapter over LangChain embeddings.

Wraps any langchain_core Embeddings implementation (Ollama, OpenAI,
HuggingFace; see llm_builder.build_embeddings) and translates its
failures into EmbeddingUnavailableError.
"""

from __future__ import annotations

import logging

from langchain_core.embeddings import Embeddings

from domain.exceptions import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


class LangChainEmbedder:
    """Async EmbeddingPort backed by a LangChain Embeddings object."""

    def __init__(self, embeddings: Embeddings):
        self._embeddings = embeddings

    async def embed(self, text: str) -> list[float]:
        try:
            # aembed_query falls back to a thread-pool call for sync-only providers
            vector = await self._embeddings.aembed_query(text)
        except Exception as exc:
            logger.warning("Embedding request failed: %s", exc)
            raise EmbeddingUnavailableError(
                f"Embedding service unavailable: {type(exc).__name__}: {exc}"
            ) from exc
        return [float(x) for x in vector]

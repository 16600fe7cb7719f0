"""
infrastructure.rag.semantic_index - In-memory semantic memory with relevance search.

Stores short text fragments per collection together with their
embeddings and answers similarity queries with a relevance cutoff.

Search is brute-force cosine similarity over a numpy matrix. Callers only
see ingest()/query(), so an approximate index can replace it later.

Concurrency: ingestion is serialized per collection with an asyncio lock;
queries never take the lock. The instance can be shared by sessions.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Mapping, Optional

import numpy as np

from domain.exceptions import DuplicateIdError, EmbeddingUnavailableError
from domain.models import MemoryEntry, RetrievalResult
from domain.ports import EmbeddingPort

logger = logging.getLogger(__name__)


class SemanticMemoryIndex:
    """Collections of MemoryEntry records searchable by meaning."""

    def __init__(self, embedder: EmbeddingPort, embed_timeout: Optional[float] = 30.0):
        self._embedder = embedder
        self._embed_timeout = embed_timeout
        self._collections: dict[str, dict[str, MemoryEntry]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._dimension: Optional[int] = None

    # ================================================================
    # Public API
    # ================================================================

    async def ingest(
        self,
        collection: str,
        text: str,
        id: str,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> MemoryEntry:
        """Embed text and store it under (collection, id).

        Raises:
            DuplicateIdError: id already exists in the collection.
            EmbeddingUnavailableError: the embedder failed or returned an
                unusable vector.
        """
        lock = self._locks.setdefault(collection, asyncio.Lock())
        async with lock:
            if id in self._collections.get(collection, {}):
                raise DuplicateIdError(collection, id)

            embedding = await self._embed(text)
            entry = MemoryEntry(
                id=id,
                text=text,
                embedding=tuple(float(x) for x in embedding),
                collection=collection,
                metadata=dict(metadata or {}),
            )
            self._collections.setdefault(collection, {})[id] = entry

        logger.info(
            "Ingested '%s' into collection '%s' (%d entries)",
            id, collection, len(self._collections[collection]),
        )
        return entry

    async def query(
        self,
        collection: str,
        query_text: str,
        limit: int = 3,
        min_relevance: float = 0.0,
    ) -> list[RetrievalResult]:
        """Return up to `limit` entries with relevance >= min_relevance.

        Results are sorted by descending relevance; ties keep ingestion
        order. An empty or unknown collection yields an empty list.
        """
        entries = list(self._collections.get(collection, {}).values())
        if not entries or limit <= 0:
            return []

        query_vec = np.asarray(await self._embed(query_text), dtype=np.float64)
        matrix = np.asarray([e.embedding for e in entries], dtype=np.float64)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vec)
        scores = (matrix @ query_vec) / norms
        scores = np.clip(scores, 0.0, 1.0)

        # stable sort keeps ingestion order among equal scores
        order = np.argsort(-scores, kind="stable")
        results: list[RetrievalResult] = []
        for idx in order:
            relevance = float(scores[idx])
            if relevance < min_relevance:
                break
            results.append(RetrievalResult(entry=entries[idx], relevance=relevance))
            if len(results) >= limit:
                break

        logger.debug(
            "Query on '%s' returned %d/%d entries (min_relevance=%.2f)",
            collection, len(results), len(entries), min_relevance,
        )
        return results

    def collections(self) -> list[str]:
        return list(self._collections.keys())

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))

    def get(self, collection: str, id: str) -> Optional[MemoryEntry]:
        return self._collections.get(collection, {}).get(id)

    # ================================================================
    # Private helpers
    # ================================================================

    async def _embed(self, text: str) -> list[float]:
        try:
            vector = await asyncio.wait_for(
                self._embedder.embed(text), timeout=self._embed_timeout,
            )
        except EmbeddingUnavailableError:
            raise
        except asyncio.TimeoutError as exc:
            raise EmbeddingUnavailableError(
                f"Embedding service timed out after {self._embed_timeout}s"
            ) from exc
        except Exception as exc:
            raise EmbeddingUnavailableError(
                f"Embedding service failed: {type(exc).__name__}: {exc}"
            ) from exc

        self._check_vector(vector)
        return list(vector)

    def _check_vector(self, vector) -> None:
        """Reject vectors that would silently corrupt similarity scores."""
        if vector is None or len(vector) == 0:
            raise EmbeddingUnavailableError("Embedding service returned an empty vector")
        if not all(math.isfinite(float(x)) for x in vector):
            raise EmbeddingUnavailableError("Embedding contains non-finite values")
        if not any(float(x) != 0.0 for x in vector):
            raise EmbeddingUnavailableError("Embedding service returned a zero vector")
        if self._dimension is None:
            self._dimension = len(vector)
        elif len(vector) != self._dimension:
            raise EmbeddingUnavailableError(
                f"Embedding dimension {len(vector)} does not match index dimension {self._dimension}"
            )

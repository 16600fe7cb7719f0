"""
agent.context - Merge the user's query with long-term memory hits.

The composed text, not the raw query, becomes the user turn. Rendering
is deterministic: identical memory contents and query produce
byte-identical output.
"""

from __future__ import annotations

import logging

from domain.exceptions import EmbeddingUnavailableError
from domain.models import RetrievalResult
from domain.ports import MemoryIndexPort

logger = logging.getLogger(__name__)

NO_CONTEXT_MARKER = "(no relevant context found)"


class ContextComposer:
    """Builds the enriched user turn from a query and the memory index."""

    def __init__(
        self,
        index: MemoryIndexPort,
        collection: str,
        limit: int = 3,
        min_relevance: float = 0.7,
    ):
        self._index = index
        self._collection = collection
        self._limit = limit
        self._min_relevance = min_relevance

    async def compose(self, user_text: str) -> str:
        try:
            hits = await self._index.query(
                self._collection,
                user_text,
                limit=self._limit,
                min_relevance=self._min_relevance,
            )
        except EmbeddingUnavailableError as exc:
            logger.warning("Context retrieval skipped: %s", exc)
            hits = []

        logger.info(
            "Composed context for query with %d memory hit(s) from '%s'",
            len(hits), self._collection,
        )
        return render_context(user_text, hits)


def render_context(user_text: str, hits: list[RetrievalResult]) -> str:
    """Render the query followed by a labeled block of memory hits."""
    if hits:
        body = "\n".join(
            f"- {hit.entry.text} (relevance: {hit.relevance:.2f})" for hit in hits
        )
    else:
        body = NO_CONTEXT_MARKER
    return f"User Query: {user_text}\n\nRelevant User Context:\n{body}"

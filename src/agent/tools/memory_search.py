"""
agent.tools.memory_search - Let the model query long-term memory on demand.

The context composer already attaches the top hits to every user turn;
this tool covers follow-up lookups with the model's own query.
"""

from __future__ import annotations

from agent.tools.base import BaseTool, ToolParameter
from domain.ports import MemoryIndexPort


class SearchMemoryTool(BaseTool):
    """Semantic search over one memory collection."""

    name = "search_memory"
    description = (
        "Search long-term memory for facts about the user or past analyses. "
        "Returns matching facts with relevance scores."
    )
    parameters = {
        "query": ToolParameter("string", "What to look for, in natural language"),
        "limit": ToolParameter("integer", "Maximum number of facts to return (default 3)", required=False),
    }

    def __init__(self, index: MemoryIndexPort, collection: str, min_relevance: float = 0.5):
        self._index = index
        self._collection = collection
        self._min_relevance = min_relevance

    async def execute(self, query: str = "", limit: int = 3, **kwargs) -> str:
        hits = await self._index.query(
            self._collection, query,
            limit=max(1, min(limit, 10)),
            min_relevance=self._min_relevance,
        )
        if not hits:
            return f"No memories found for '{query}'."
        return "\n".join(
            f"- {hit.entry.text} (relevance: {hit.relevance:.2f})" for hit in hits
        )

"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the agent needs from the outside world without
specifying HOW. Infrastructure modules provide concrete implementations.

Using typing.Protocol (structural typing) instead of ABC: any class that
implements the methods satisfies the port without explicit inheritance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

from domain.models import ExecutionPolicy, ModelReply, RetrievalResult, Turn

if TYPE_CHECKING:
    from agent.tools.base import ToolDescriptor


@runtime_checkable
class EmbeddingPort(Protocol):
    """Turn arbitrary text into a fixed-dimensionality float vector."""

    async def embed(self, text: str) -> list[float]: ...


@runtime_checkable
class ChatModelPort(Protocol):
    """Ask the language model for the next action of a round.

    Implementations raise ModelServiceUnavailableError when no reply can
    be produced.
    """

    async def complete(
        self,
        turns: Sequence[Turn],
        tools: Sequence[ToolDescriptor],
        policy: ExecutionPolicy,
    ) -> ModelReply: ...


@runtime_checkable
class MemoryIndexPort(Protocol):
    """Semantic search over stored text fragments."""

    async def query(
        self,
        collection: str,
        query_text: str,
        limit: int = 3,
        min_relevance: float = 0.0,
    ) -> list[RetrievalResult]: ...

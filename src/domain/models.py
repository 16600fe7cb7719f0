"""
domain.models - Value objects for the conversational agent.

These are immutable data containers with no business logic and no
dependencies on infrastructure (no LangChain, no Ollama, no numpy).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from domain.exceptions import (
    MaxRoundsExceededError,
    SessionCancelledError,
    SessionFailedError,
)


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

class Role(str, Enum):
    """Who produced a turn."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool invocation requested by the model.

    parse_error is set when the model produced arguments that could not be
    decoded; the dispatcher reports it back instead of calling the tool.
    """
    tool_name: str
    arguments: Mapping[str, Any]
    call_id: str
    parse_error: Optional[str] = None


@dataclass(frozen=True)
class ToolCallResult:
    """Output of one tool invocation, paired to its request by call_id."""
    call_id: str
    output: str
    is_error: bool = False


@dataclass(frozen=True)
class Turn:
    """One atomic unit of conversation. Never mutated once appended."""
    role: Role
    content: str
    tool_call_id: Optional[str] = None
    tool_calls: tuple[ToolCallRequest, ...] = ()

    @classmethod
    def system(cls, content: str) -> Turn:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Turn:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls, content: str, tool_calls: tuple[ToolCallRequest, ...] = (),
    ) -> Turn:
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool_result(cls, result: ToolCallResult) -> Turn:
        return cls(role=Role.TOOL, content=result.output, tool_call_id=result.call_id)


# ---------------------------------------------------------------------------
# Semantic memory
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MemoryEntry:
    """A stored text fragment with its embedding. Write-once."""
    id: str
    text: str
    embedding: tuple[float, ...]
    collection: str
    metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RetrievalResult:
    """A memory hit for a single query. Relevance is in [0, 1]."""
    entry: MemoryEntry
    relevance: float


# ---------------------------------------------------------------------------
# Model service
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExecutionPolicy:
    """Sampling settings sent with every model call.

    Defaults pin sampling low: tool selection must be reproducible.
    """
    temperature: float = 0.0
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass(frozen=True)
class ModelReply:
    """What the model returned for one round.

    Either a final text answer (tool_calls empty) or one or more tool
    requests, optionally with some accompanying text.
    """
    text: str = ""
    tool_calls: tuple[ToolCallRequest, ...] = ()

    @property
    def is_final(self) -> bool:
        return not self.tool_calls

    @classmethod
    def answer(cls, text: str) -> ModelReply:
        return cls(text=text)

    @classmethod
    def calls(cls, *requests: ToolCallRequest, text: str = "") -> ModelReply:
        return cls(text=text, tool_calls=tuple(requests))


# ---------------------------------------------------------------------------
# Run outcome
# ---------------------------------------------------------------------------

class OutcomeStatus(str, Enum):
    """Terminal state of one orchestration run."""
    ANSWERED = "answered"
    MAX_ROUNDS_EXCEEDED = "max_rounds_exceeded"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class AgentOutcome:
    """Result handed back to the caller of a run.

    answer:  Final answer, or the best partial answer for non-answered runs.
    rounds:  Number of model calls that completed a round.
    note:    Diagnostic text for non-answered runs.
    turns:   Conversation snapshot at the moment the run ended.
    """
    status: OutcomeStatus
    answer: str = ""
    rounds: int = 0
    note: str = ""
    turns: tuple[Turn, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.ANSWERED

    def raise_for_status(self) -> None:
        """Raise the matching domain error when the run did not answer."""
        if self.status is OutcomeStatus.FAILED:
            raise SessionFailedError(self.note)
        if self.status is OutcomeStatus.MAX_ROUNDS_EXCEEDED:
            raise MaxRoundsExceededError(self.note)
        if self.status is OutcomeStatus.CANCELLED:
            raise SessionCancelledError(self.note)

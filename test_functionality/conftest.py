"""
Shared pytest fixtures for the agent tests.

Provides deterministic stand-ins for the two external collaborators:
a bag-of-words embedder and a chat model that replays a script.
"""

import asyncio
import logging
import re
from datetime import datetime
from typing import Callable, Sequence, Union

import pytest

from agent.memory import ConversationState
from agent.tools.base import ToolDescriptor, ToolParameter
from agent.tools.registry import ToolRegistry
from domain.exceptions import ModelServiceUnavailableError
from domain.models import ExecutionPolicy, ModelReply, ToolCallRequest, Turn
from infrastructure.config import Settings
from infrastructure.rag.semantic_index import SemanticMemoryIndex

logging.basicConfig(level=logging.WARNING)

EMBEDDING_DIM = 512

_TOKEN = re.compile(r"[a-z0-9]+")


class TokenEmbedder:
    """Bag-of-words embedder: every new token gets the next vector slot.

    Texts with no tokens embed to the zero vector, which the index rejects.
    """

    def __init__(self, dimension: int = EMBEDDING_DIM):
        self.dimension = dimension
        self.vocabulary: dict[str, int] = {}
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        vector = [0.0] * self.dimension
        for token in _TOKEN.findall(text.lower()):
            slot = self.vocabulary.setdefault(token, len(self.vocabulary) % self.dimension)
            vector[slot] += 1.0
        return vector


class FailingEmbedder:
    async def embed(self, text: str) -> list[float]:
        raise ConnectionError("embedding backend offline")


class SlowEmbedder:
    async def embed(self, text: str) -> list[float]:
        await asyncio.sleep(10)
        return [1.0]


Step = Union[ModelReply, Exception, Callable[[Sequence[Turn]], ModelReply]]


class ScriptedChatModel:
    """ChatModelPort that replays a list of steps, one per call.

    A step is a ModelReply, an exception to raise, or a callable receiving
    the turn snapshot. When the script runs out the last step repeats.
    """

    def __init__(self, *steps: Step, delay: float = 0.0):
        if not steps:
            raise ValueError("ScriptedChatModel needs at least one step")
        self.steps = list(steps)
        self.delay = delay
        self.calls: list[tuple[tuple[Turn, ...], tuple[str, ...], ExecutionPolicy]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def complete(self, turns, tools, policy) -> ModelReply:
        index = min(len(self.calls), len(self.steps) - 1)
        self.calls.append((tuple(turns), tuple(t.name for t in tools), policy))
        if self.delay:
            await asyncio.sleep(self.delay)
        step = self.steps[index]
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(turns)
        return step


def call(tool_name: str, call_id: str = "call_1", **arguments) -> ToolCallRequest:
    return ToolCallRequest(tool_name=tool_name, arguments=arguments, call_id=call_id)


def echo_descriptor() -> ToolDescriptor:
    return ToolDescriptor(
        name="echo",
        description="Repeat the given text back.",
        invoke=lambda text: text,
        parameters={"text": ToolParameter("string", "Text to repeat")},
    )


@pytest.fixture
def embedder():
    return TokenEmbedder()


@pytest.fixture
def memory_index(embedder):
    return SemanticMemoryIndex(embedder, embed_timeout=1.0)


@pytest.fixture
def registry():
    reg = ToolRegistry()
    reg.register(echo_descriptor())
    return reg


@pytest.fixture
def conversation():
    state = ConversationState()
    state.append(Turn.system("You are a test assistant."))
    state.append(Turn.user("Hello"))
    return state


@pytest.fixture
def settings():
    return Settings(
        model_retry_backoff=0.0,
        tool_timeout=1.0,
        embedding_timeout=1.0,
        context_min_relevance=0.5,
    )


@pytest.fixture
def fixed_clock():
    # A Wednesday, before the 2 PM client review
    return lambda: datetime(2024, 5, 15, 10, 7)


@pytest.fixture
def unavailable():
    return ModelServiceUnavailableError("HTTP 503")

"""
infrastructure.llm.chat_model - ChatModelPort adapter over LangChain chat models.

Converts the conversation snapshot into LangChain messages, binds the
registry's tool schemas, applies the execution policy, and turns the
returned AIMessage into a ModelReply. Any provider error or timeout is
reported as ModelServiceUnavailableError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional, Sequence
from uuid import uuid4

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from domain.exceptions import ModelServiceUnavailableError
from domain.models import ExecutionPolicy, ModelReply, Role, ToolCallRequest, Turn

if TYPE_CHECKING:
    from agent.tools.base import ToolDescriptor

logger = logging.getLogger(__name__)


class LangChainChatModel:
    """ChatModelPort backed by any tool-calling LangChain chat model."""

    def __init__(self, llm: BaseChatModel, timeout: Optional[float] = 60.0):
        self._llm = llm
        self._timeout = timeout

    async def complete(
        self,
        turns: Sequence[Turn],
        tools: Sequence[ToolDescriptor],
        policy: ExecutionPolicy,
    ) -> ModelReply:
        messages = to_langchain_messages(turns)
        try:
            runnable = _apply_policy(self._llm, policy)
            if tools:
                runnable = runnable.bind_tools([t.to_openai_schema() for t in tools])
            response = await asyncio.wait_for(runnable.ainvoke(messages), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise ModelServiceUnavailableError(
                f"Model service timed out after {self._timeout}s"
            ) from exc
        except Exception as exc:
            logger.warning("Model service call failed: %s: %s", type(exc).__name__, exc)
            raise ModelServiceUnavailableError(
                f"Model service unavailable: {type(exc).__name__}: {exc}"
            ) from exc

        if not isinstance(response, AIMessage):
            raise ModelServiceUnavailableError(
                f"Model service returned {type(response).__name__}, expected AIMessage"
            )
        return parse_ai_message(response)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def to_langchain_messages(turns: Sequence[Turn]) -> list[BaseMessage]:
    """Map conversation turns onto LangChain message types."""
    messages: list[BaseMessage] = []
    for turn in turns:
        if turn.role is Role.SYSTEM:
            messages.append(SystemMessage(content=turn.content))
        elif turn.role is Role.USER:
            messages.append(HumanMessage(content=turn.content))
        elif turn.role is Role.ASSISTANT:
            messages.append(AIMessage(
                content=turn.content,
                tool_calls=[
                    {
                        "name": call.tool_name,
                        "args": dict(call.arguments),
                        "id": call.call_id,
                        "type": "tool_call",
                    }
                    for call in turn.tool_calls
                ],
            ))
        else:
            messages.append(ToolMessage(content=turn.content, tool_call_id=turn.tool_call_id))
    return messages


def parse_ai_message(message: AIMessage) -> ModelReply:
    """Turn an AIMessage into a final answer or a set of tool requests."""
    text = _content_text(message.content)

    requests: list[ToolCallRequest] = []
    seen: set[str] = set()

    def _call_id(raw: Optional[str]) -> str:
        # Missing or repeated ids get a fresh one so each result has one owner
        call_id = raw if raw and raw not in seen else _new_call_id()
        seen.add(call_id)
        return call_id

    for call in message.tool_calls:
        requests.append(ToolCallRequest(
            tool_name=call["name"],
            arguments=dict(call.get("args") or {}),
            call_id=_call_id(call.get("id")),
        ))

    # Calls whose arguments could not be decoded still get a result turn,
    # so the model learns what went wrong.
    for call in getattr(message, "invalid_tool_calls", None) or []:
        requests.append(ToolCallRequest(
            tool_name=call.get("name") or "",
            arguments={},
            call_id=_call_id(call.get("id")),
            parse_error=call.get("error") or f"Could not parse arguments: {call.get('args')!r}",
        ))

    if requests:
        return ModelReply(text=text, tool_calls=tuple(requests))
    return ModelReply.answer(text)


def _apply_policy(llm: BaseChatModel, policy: ExecutionPolicy) -> BaseChatModel:
    """Copy the model with the policy's sampling fields where it supports them."""
    fields = type(llm).model_fields
    update: dict[str, Any] = {}
    if "temperature" in fields:
        update["temperature"] = policy.temperature
    if policy.top_p is not None and "top_p" in fields:
        update["top_p"] = policy.top_p
    if policy.max_tokens is not None:
        for name in ("max_tokens", "num_predict"):
            if name in fields:
                update[name] = policy.max_tokens
                break
    return llm.model_copy(update=update) if update else llm


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _new_call_id() -> str:
    return f"call_{uuid4().hex[:12]}"

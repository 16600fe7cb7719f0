"""
agent.executor - Agent execution engine.

The single class that runs the model + tool dispatch loop:

    AwaitingModel ──final text──▶ DirectAnswer
         │
         └──tool calls──▶ Dispatching ──results appended──▶ AwaitingModel

Terminal failures are MaxRoundsExceeded, Cancelled and Failed. run()
never raises: every exit is an AgentOutcome. Tool failures become tool
turns so the model can recover. Only a model service that stays down
after retries, or cancellation, ends the run early.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import replace
from typing import Awaitable, Optional, TypeVar

from agent.memory import ConversationState
from agent.tools.registry import ToolRegistry
from domain.exceptions import (
    InvalidArgumentsError,
    ModelServiceUnavailableError,
    SessionCancelledError,
    SessionFailedError,
    ToolError,
)
from domain.models import (
    AgentOutcome,
    ExecutionPolicy,
    ModelReply,
    OutcomeStatus,
    Role,
    ToolCallRequest,
    ToolCallResult,
    Turn,
)
from domain.ports import ChatModelPort

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMPTY_RESPONSE = "(empty response)"


class AgentExecutor:
    """Runs the model + tool selection loop.

    Constructed by factory.py with all dependencies injected. Holds no
    conversation state: the ConversationState is passed to each run().
    """

    def __init__(
        self,
        model: ChatModelPort,
        tools: ToolRegistry,
        policy: ExecutionPolicy = ExecutionPolicy(),
        max_rounds: int = 8,
        model_retries: int = 2,
        retry_backoff: float = 0.5,
        tool_timeout: Optional[float] = 30.0,
        max_concurrent_tools: int = 4,
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        if max_concurrent_tools < 1:
            raise ValueError("max_concurrent_tools must be at least 1")
        self._model = model
        self._tools = tools
        self._policy = policy
        self._max_rounds = max_rounds
        self._model_retries = model_retries
        self._retry_backoff = retry_backoff
        self._tool_timeout = tool_timeout
        self._max_concurrent_tools = max_concurrent_tools

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @property
    def max_rounds(self) -> int:
        return self._max_rounds

    async def run(
        self,
        conversation: ConversationState,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AgentOutcome:
        """Drive the model until it answers, the cap is hit, or the run stops.

        Args:
            conversation: State to read from and append to. The caller has
                          already appended the user turn.
            cancel_event: Set by the caller to abort the run.

        Returns:
            The run's AgentOutcome. Turns appended before an early stop stay
            in the conversation.
        """
        rounds = 0
        start = len(conversation)
        try:
            while rounds < self._max_rounds:
                if cancel_event is not None and cancel_event.is_set():
                    raise SessionCancelledError("Cancelled before model call")

                reply = await self._call_model(conversation, cancel_event)
                rounds += 1

                if reply.is_final:
                    answer = reply.text
                    if not answer.strip():
                        answer = _empty_reply_fallback(conversation, start)
                        logger.warning(
                            "Model returned an empty answer in round %d; using %r",
                            rounds, answer[:80],
                        )
                    conversation.append(Turn.assistant(answer))
                    logger.info("Agent answered after %d round(s)", rounds)
                    return self._outcome(OutcomeStatus.ANSWERED, conversation, rounds, answer)

                requests = _unique_call_ids(reply.tool_calls)
                logger.info(
                    "Round %d: model requested %d tool call(s): %s",
                    rounds, len(requests),
                    ", ".join(c.tool_name for c in requests),
                )
                results = await run_cancellable(self._dispatch(requests), cancel_event)

                # Appended only after every call of the round has a result.
                conversation.append(Turn.assistant(reply.text, requests))
                for result in results:
                    conversation.append(Turn.tool_result(result))

        except SessionCancelledError as exc:
            logger.info("Agent run cancelled after %d round(s)", rounds)
            return self._outcome(
                OutcomeStatus.CANCELLED, conversation, rounds,
                conversation.last_assistant_text() or "", note=str(exc),
            )
        except SessionFailedError as exc:
            logger.error("Agent run failed: %s", exc)
            return self._outcome(
                OutcomeStatus.FAILED, conversation, rounds,
                conversation.last_assistant_text() or "", note=str(exc),
            )
        except Exception as exc:
            logger.exception("Agent run failed unexpectedly after %d round(s)", rounds)
            return self._outcome(
                OutcomeStatus.FAILED, conversation, rounds,
                conversation.last_assistant_text() or "",
                note=f"Unexpected error: {type(exc).__name__}: {exc}",
            )

        logger.warning("Agent stopped at round cap (%d) without a final answer", rounds)
        return self._outcome(
            OutcomeStatus.MAX_ROUNDS_EXCEEDED, conversation, rounds,
            _best_partial_answer(conversation),
            note=f"Stopped after {rounds} rounds without a final answer from the model.",
        )

    # ------------------------------------------------------------------
    # Model calls
    # ------------------------------------------------------------------

    async def _call_model(
        self,
        conversation: ConversationState,
        cancel_event: Optional[asyncio.Event],
    ) -> ModelReply:
        """Ask the model for the next action, retrying with backoff."""
        attempts = self._model_retries + 1
        delay = self._retry_backoff
        last_error: Optional[ModelServiceUnavailableError] = None

        for attempt in range(1, attempts + 1):
            try:
                return await run_cancellable(
                    self._model.complete(
                        conversation.snapshot(),
                        self._tools.describe_all(),
                        self._policy,
                    ),
                    cancel_event,
                )
            except ModelServiceUnavailableError as exc:
                last_error = exc
                logger.warning(
                    "Model service unavailable (attempt %d/%d): %s", attempt, attempts, exc,
                )
                if attempt < attempts:
                    await run_cancellable(asyncio.sleep(delay), cancel_event)
                    delay *= 2

        raise SessionFailedError(
            f"Model service unavailable after {attempts} attempt(s): {last_error}"
        )

    # ------------------------------------------------------------------
    # Tool dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, requests: tuple[ToolCallRequest, ...]) -> list[ToolCallResult]:
        """Run every request of a round concurrently; results keep request order."""
        semaphore = asyncio.Semaphore(self._max_concurrent_tools)

        async def _bounded(request: ToolCallRequest) -> ToolCallResult:
            async with semaphore:
                return await self._invoke_one(request)

        return list(await asyncio.gather(*(_bounded(r) for r in requests)))

    async def _invoke_one(self, request: ToolCallRequest) -> ToolCallResult:
        try:
            if request.parse_error is not None:
                raise InvalidArgumentsError(
                    f"Arguments for tool '{request.tool_name}' could not be parsed: {request.parse_error}"
                )
            output = await self._tools.invoke(
                request.tool_name, request.arguments, timeout=self._tool_timeout,
            )
        except ToolError as exc:
            logger.warning("Tool call %s (%s) failed: %s", request.call_id, request.tool_name, exc)
            return ToolCallResult(
                call_id=request.call_id,
                output=format_tool_error(exc),
                is_error=True,
            )
        logger.debug("Tool call %s (%s) succeeded", request.call_id, request.tool_name)
        return ToolCallResult(call_id=request.call_id, output=output)

    @staticmethod
    def _outcome(
        status: OutcomeStatus,
        conversation: ConversationState,
        rounds: int,
        answer: str,
        note: str = "",
    ) -> AgentOutcome:
        return AgentOutcome(
            status=status,
            answer=answer,
            rounds=rounds,
            note=note,
            turns=conversation.snapshot(),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def format_tool_error(exc: ToolError) -> str:
    """Structured error text fed back to the model as a tool result."""
    return f"ERROR [{exc.code}]: {exc}"


async def run_cancellable(aw: Awaitable[T], cancel_event: Optional[asyncio.Event]) -> T:
    """Await `aw`, aborting it as soon as cancel_event is set.

    Raises:
        SessionCancelledError: the event was set before `aw` finished. The
            in-flight work is cancelled and its result discarded.
    """
    if cancel_event is None:
        return await aw

    task = asyncio.ensure_future(aw)
    if cancel_event.is_set():
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise SessionCancelledError("Cancelled by caller")

    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if cancel_event.is_set():
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise SessionCancelledError("Cancelled by caller")
    return task.result()


def _best_partial_answer(conversation: ConversationState) -> str:
    text = conversation.last_assistant_text()
    if text:
        return text
    tool_turns = conversation.tool_turns()
    return tool_turns[-1].content if tool_turns else ""


def _empty_reply_fallback(conversation: ConversationState, start: int) -> str:
    """Answer used when the model's final reply is blank.

    The last non-blank tool output of the current run, else EMPTY_RESPONSE.
    Turns from earlier runs are never reused.
    """
    for turn in reversed(conversation.snapshot()[start:]):
        if turn.role is Role.TOOL and turn.content.strip():
            return turn.content
    return EMPTY_RESPONSE


def _unique_call_ids(requests: tuple[ToolCallRequest, ...]) -> tuple[ToolCallRequest, ...]:
    """Rename repeated call ids within one round so every result can be matched."""
    seen: set[str] = set()
    unique = []
    for request in requests:
        call_id = request.call_id
        n = 1
        while call_id in seen:
            n += 1
            call_id = f"{request.call_id}_{n}"
        if call_id != request.call_id:
            logger.warning("Duplicate tool call id %r renamed to %r", request.call_id, call_id)
            request = replace(request, call_id=call_id)
        seen.add(call_id)
        unique.append(request)
    return tuple(unique)

"""
application.session - Per-conversation aggregate root.

Replaces a process-wide orchestrator object: every conversation gets its
own AgentSession owning its ConversationState and tool set, with
references to the shared memory index (via the composer) and the model
handle (via the executor). Two concurrent conversations get two
different sessions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from uuid import uuid4

from agent.context import ContextComposer
from agent.executor import AgentExecutor, run_cancellable
from agent.memory import ConversationState
from agent.tools.registry import ToolRegistry
from domain.exceptions import InvalidTurnError, SessionCancelledError
from domain.models import AgentOutcome, OutcomeStatus, Turn

logger = logging.getLogger(__name__)


class AgentSession:
    """One conversation: compose context, append the user turn, run the loop.

    Attributes:
        session_id:    Unique per conversation, for tracing/logging.
        conversation:  The session's append-only turn log.
    """

    def __init__(
        self,
        executor: AgentExecutor,
        system_prompt: str = "",
        composer: Optional[ContextComposer] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid4().hex
        self.conversation = ConversationState()
        self._executor = executor
        self._composer = composer
        if system_prompt:
            self.conversation.append(Turn.system(system_prompt))

    @property
    def tools(self) -> ToolRegistry:
        return self._executor.tools

    def history(self) -> tuple[Turn, ...]:
        return self.conversation.snapshot()

    async def send(
        self,
        user_text: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AgentOutcome:
        """Process one user message and return the run's outcome.

        Args:
            user_text:    The user's message text.
            cancel_event: Set by the caller to abort retrieval or the loop.

        Raises:
            InvalidTurnError: user_text is blank.
        """
        if not user_text.strip():
            raise InvalidTurnError("User message must not be empty")

        logger.info("Session %s processing: %s", self.session_id, user_text[:80])

        if self._composer is not None:
            try:
                content = await run_cancellable(self._composer.compose(user_text), cancel_event)
            except SessionCancelledError as exc:
                logger.info("Session %s cancelled during context retrieval", self.session_id)
                return AgentOutcome(
                    status=OutcomeStatus.CANCELLED,
                    note=str(exc),
                    turns=self.conversation.snapshot(),
                )
        else:
            content = user_text

        self.conversation.append(Turn.user(content))
        outcome = await self._executor.run(self.conversation, cancel_event)

        logger.info(
            "Session %s finished: status=%s rounds=%d",
            self.session_id, outcome.status.value, outcome.rounds,
        )
        return outcome

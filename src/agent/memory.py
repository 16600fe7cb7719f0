"""
agent.memory - Per-session conversation state.

An ordered, append-only log of turns. It is the single source of truth
fed to the language model on every round.

NOT global: each AgentSession gets its own instance. The log is never
trimmed, so prompt size grows with history length.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from domain.exceptions import InvalidTurnError
from domain.models import Role, Turn

logger = logging.getLogger(__name__)


class ConversationState:
    """Append-only conversation log."""

    def __init__(self, turns: Iterable[Turn] = ()):
        self._turns: list[Turn] = []
        # call_ids requested by the latest assistant turn and not yet answered
        self._pending_calls: set[str] = set()
        for turn in turns:
            self.append(turn)

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, turn: Turn) -> None:
        """Add a turn to the end of the log.

        Raises:
            InvalidTurnError: empty user/assistant content, or a tool turn
                that does not answer a call requested by the latest
                assistant turn.
        """
        if turn.role is Role.USER and not turn.content.strip():
            raise InvalidTurnError("User turns must have non-empty content")

        if turn.role is Role.ASSISTANT and not turn.tool_calls and not turn.content.strip():
            raise InvalidTurnError("Assistant turns must have content or tool calls")

        if turn.role is Role.TOOL:
            if turn.tool_call_id is None or turn.tool_call_id not in self._pending_calls:
                raise InvalidTurnError(
                    f"Tool result '{turn.tool_call_id}' does not answer a pending tool call"
                )
            self._pending_calls.discard(turn.tool_call_id)
        elif turn.role is Role.ASSISTANT:
            self._pending_calls = {call.call_id for call in turn.tool_calls}
        else:
            self._pending_calls = set()

        self._turns.append(turn)
        logger.debug("Appended %s turn (history=%d)", turn.role.value, len(self._turns))

    def snapshot(self) -> tuple[Turn, ...]:
        """Immutable ordered view. Pass this to the model service."""
        return tuple(self._turns)

    def tool_turns(self) -> list[Turn]:
        return [t for t in self._turns if t.role is Role.TOOL]

    def last_assistant_text(self) -> Optional[str]:
        """Content of the most recent assistant turn that has text."""
        for turn in reversed(self._turns):
            if turn.role is Role.ASSISTANT and turn.content.strip():
                return turn.content
        return None

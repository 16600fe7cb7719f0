"""
agent.tools.messaging - Simulated email notifications.

Nothing leaves the process: messages are recorded in an Outbox so the
caller (and tests) can inspect what the agent "sent".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from agent.tools.base import BaseTool, ToolParameter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutgoingMessage:
    recipient: str
    subject: str
    body: str


@dataclass
class Outbox:
    messages: list[OutgoingMessage] = field(default_factory=list)

    def send(self, recipient: str, subject: str, body: str) -> OutgoingMessage:
        if not recipient.strip():
            raise ValueError("recipient must not be empty")
        message = OutgoingMessage(recipient=recipient.strip(), subject=subject, body=body)
        self.messages.append(message)
        logger.info("Queued message to %s: %s", message.recipient, subject)
        return message


class SendMeetingReminderTool(BaseTool):
    name = "send_meeting_reminder"
    description = "Sends a meeting reminder to a participant and returns a confirmation message."
    parameters = {
        "recipient": ToolParameter("string", "Meeting participant email or name"),
        "meeting_time": ToolParameter("string", "Meeting time"),
        "topic": ToolParameter("string", "Meeting topic"),
    }

    def __init__(self, outbox: Outbox):
        self._outbox = outbox

    async def execute(self, recipient: str = "", meeting_time: str = "", topic: str = "", **kwargs) -> str:
        message = self._outbox.send(
            recipient,
            subject=f"Reminder: {topic}",
            body=f"Reminder: '{topic}' is scheduled for {meeting_time}.",
        )
        return f"✓ Reminder sent to {message.recipient} for {topic} at {meeting_time}"


class SendAgendaEmailTool(BaseTool):
    name = "send_agenda_email"
    description = "Sends a meeting agenda to a participant by email."
    parameters = {
        "recipient": ToolParameter("string", "Meeting participant email or name"),
        "agenda": ToolParameter("string", "Meeting agenda text"),
    }

    def __init__(self, outbox: Outbox):
        self._outbox = outbox

    async def execute(self, recipient: str = "", agenda: str = "", **kwargs) -> str:
        message = self._outbox.send(recipient, subject="Meeting agenda", body=agenda)
        return f"✓ Agenda sent to {message.recipient}"

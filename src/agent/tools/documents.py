"""
agent.tools.documents - Meeting material generation.
"""

from __future__ import annotations

from agent.tools.base import BaseTool, ToolParameter

_AGENDA_ITEMS = ("Opening remarks", "Main discussion", "Action items", "Closing")


class CreateAgendaTool(BaseTool):
    """Create a meeting agenda document."""

    name = "create_agenda"
    description = "Creates a meeting agenda with the given topic and attendees."
    parameters = {
        "topic": ToolParameter("string", "The meeting topic"),
        "attendees": ToolParameter("string", "Comma-separated list of attendees"),
    }

    async def execute(self, topic: str = "", attendees: str = "", **kwargs) -> str:
        names = ", ".join(a.strip() for a in attendees.split(",") if a.strip())
        lines = [
            "MEETING AGENDA",
            f"Topic: {topic}",
            f"Attendees: {names or 'TBD'}",
            "Items:",
        ]
        lines.extend(f"{i}. {item}" for i, item in enumerate(_AGENDA_ITEMS, start=1))
        return "\n".join(lines)

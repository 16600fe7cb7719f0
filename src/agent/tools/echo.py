"""
agent.tools.echo - Repeat the given text back.

Useful for checking that tool calling works end to end.
"""

from __future__ import annotations

from agent.tools.base import BaseTool, ToolParameter


class EchoTool(BaseTool):
    """Return the input text unchanged."""

    name = "echo"
    description = (
        "Repeat the given text back exactly as provided. "
        "Use when the user asks you to echo, repeat, or say back some text."
    )
    parameters = {
        "text": ToolParameter("string", "The text to repeat back verbatim"),
    }

    async def execute(self, text: str = "", **kwargs) -> str:
        return text

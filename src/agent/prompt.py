"""
agent.prompt - System prompt for the conversational agent.

Built from the registry so the prompt always lists exactly the tools the
model can call in this session.
"""

from __future__ import annotations

from agent.tools.registry import ToolRegistry

_BASE_PROMPT = """You are a helpful assistant.

- Each user message starts with "User Query:" followed by a "Relevant User Context:" block.
  The context lines are facts remembered about the user, each with a relevance score.
  Use them to personalize your answer; ignore lines that do not fit the question.
- Call a tool when it can answer better than you can from memory.
  Answer directly when no tool is needed.
- A tool result starting with "ERROR [" means the call failed. Read the message,
  then retry with corrected arguments, pick another tool, or explain the problem.
- Never invent tool results."""


def build_system_prompt(registry: ToolRegistry) -> str:
    """Build the system prompt with dynamically listed tools.

    Args:
        registry: The tool registry with all registered tools.

    Returns:
        The system prompt string.
    """
    tools = registry.describe_all()
    if not tools:
        return _BASE_PROMPT + "\n\nNo tools are available in this session. Answer directly."

    lines = [f"- {tool.name}: {tool.description}" for tool in tools]
    prompt = _BASE_PROMPT + "\n\nAvailable tools:\n" + "\n".join(lines)

    if "get_moderation_guidelines" in registry:
        prompt += (
            "\n\nWhen asked about moderation guidelines, policy or rules, "
            "ALWAYS call get_moderation_guidelines first."
        )
    if "detect_toxicity" in registry:
        prompt += (
            "\n\nTo decide whether a piece of text should be allowed, flagged or "
            "blocked, call detect_toxicity on the exact text instead of guessing."
        )
    if "search_memory" in registry:
        prompt += (
            "\n\nIf the provided context is not enough, call search_memory "
            "with a focused query before saying you do not know."
        )
    return prompt

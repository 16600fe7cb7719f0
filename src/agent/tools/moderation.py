"""
agent.tools.moderation - Static content moderation policy.
"""

from __future__ import annotations

from agent.tools.base import BaseTool

MODERATION_GUIDELINES = """Moderation policy guidelines:

**BLOCK immediately:**
- Hate speech, harassment, threats
- Explicit violence or gore
- Adult/sexual content
- Spam or phishing attempts

**FLAG for review:**
- Borderline offensive language
- Political or controversial topics
- Unverified claims or misinformation

**ALLOW:**
- Constructive criticism
- Educational content
- Personal opinions (non-hateful)
- General discussions"""


class ModerationGuidelinesTool(BaseTool):
    """Return the content moderation policy."""

    name = "get_moderation_guidelines"
    description = (
        "Returns the content moderation policy guidelines: what to block, "
        "what to flag for review, and what to allow."
    )

    async def execute(self, **kwargs) -> str:
        return MODERATION_GUIDELINES

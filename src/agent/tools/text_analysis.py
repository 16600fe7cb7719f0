"""
agent.tools.text_analysis - Prompt-backed text analysis tools.

Each tool sends one fixed prompt to the session's chat model, without
tools and at a low temperature, and returns the model's reply:

    analyze_sentiment   JSON with sentiment, confidence, reasoning
    detect_toxicity     JSON with isToxic, categories, severity, recommendation
    detect_language     ISO 639-1 code
    translate           translated text
"""

from __future__ import annotations

import logging

from agent.tools.base import BaseTool, ToolParameter
from agent.tools.moderation import MODERATION_GUIDELINES
from domain.models import ExecutionPolicy, Turn
from domain.ports import ChatModelPort

logger = logging.getLogger(__name__)

_SENTIMENT_TEMPLATE = """Analyze the sentiment of the following text. Be nuanced:
- Strong, clear sentiment gets HIGH confidence (0.8-1.0)
- Weak or subtle sentiment gets MEDIUM confidence (0.5-0.7)
- Mixed or ambiguous sentiment gets LOW confidence (0.2-0.5)

Return ONLY a JSON object:
{{
  "sentiment": "positive" or "negative" or "neutral",
  "confidence": 0.0 to 1.0,
  "reasoning": "brief explanation of the confidence level"
}}

Text to analyze:
{text}"""

_TOXICITY_TEMPLATE = """Detect harmful, toxic or policy-violating content in the following text.

{guidelines}

Return ONLY a JSON object with this exact structure:
{{
  "isToxic": true or false,
  "categories": ["zero or more of: hate speech, harassment, violence, adult content, spam"],
  "severity": "low" or "medium" or "high" or "critical",
  "recommendation": "allow" or "flag" or "block"
}}

Text to analyze:
{text}"""

_LANGUAGE_TEMPLATE = """Identify the language of the following text.
Return ONLY its 2-letter ISO 639-1 code (en, es, fr, de, ...).

Text to analyze:
{text}"""

_TRANSLATE_TEMPLATE = """Translate the following text to {target_language}.
Be accurate and preserve meaning and tone. Return ONLY the translation.

{text}"""


class PromptTool(BaseTool):
    """Base for tools answered by a single prompt to the chat model."""

    template: str
    policy = ExecutionPolicy(temperature=0.3)

    def __init__(self, model: ChatModelPort):
        self._model = model

    async def _complete(self, **values: str) -> str:
        prompt = self.template.format(**values)
        reply = await self._model.complete([Turn.user(prompt)], [], self.policy)
        text = reply.text.strip()
        if not text:
            raise ValueError(f"Model returned an empty response for {self.name}")
        logger.debug("%s -> %r", self.name, text[:80])
        return text


class AnalyzeSentimentTool(PromptTool):
    name = "analyze_sentiment"
    description = (
        "Analyzes the sentiment of text. Returns JSON with the sentiment "
        "(positive, negative or neutral), a confidence score and reasoning."
    )
    parameters = {
        "text": ToolParameter("string", "The text to analyze"),
    }
    template = _SENTIMENT_TEMPLATE

    async def execute(self, text: str = "", **kwargs) -> str:
        return await self._complete(text=text)


class DetectToxicityTool(PromptTool):
    name = "detect_toxicity"
    description = (
        "Detects harmful, toxic or policy-violating content. Returns JSON with "
        "isToxic, categories, severity and a recommendation (allow, flag or block)."
    )
    parameters = {
        "text": ToolParameter("string", "The text to check for violations"),
    }
    template = _TOXICITY_TEMPLATE

    async def execute(self, text: str = "", **kwargs) -> str:
        return await self._complete(text=text, guidelines=MODERATION_GUIDELINES)


class DetectLanguageTool(PromptTool):
    """Returns a lower-case ISO 639-1 code."""

    name = "detect_language"
    description = "Identifies the language of text as a 2-letter ISO 639-1 code."
    parameters = {
        "text": ToolParameter("string", "The text whose language to identify"),
    }
    template = _LANGUAGE_TEMPLATE
    policy = ExecutionPolicy(temperature=0.0)

    async def execute(self, text: str = "", **kwargs) -> str:
        code = await self._complete(text=text)
        return code.strip(" .\"'`").lower()


class TranslateTool(PromptTool):
    name = "translate"
    description = "Translates text to the specified target language."
    parameters = {
        "text": ToolParameter("string", "The text to translate"),
        "target_language": ToolParameter("string", "Language to translate into, e.g. 'Spanish'"),
    }
    template = _TRANSLATE_TEMPLATE
    policy = ExecutionPolicy(temperature=0.3, max_tokens=500)

    async def execute(self, text: str = "", target_language: str = "", **kwargs) -> str:
        return await self._complete(text=text, target_language=target_language)

"""
agent - Conversational agent orchestration layer.

Contains tools, conversation state, prompts, context composition and the
executor that runs the model + tool loop.
Depends on domain/ only. Never imports from infrastructure/.
"""

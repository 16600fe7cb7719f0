"""
Run the Recall Agent CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    chat       Interactive chat session
    ask        One-shot question
    search     Query the semantic memory directly
    tools      List the tools available to the agent

Examples:
    python run_cli.py chat --memory-file memories.json
    python run_cli.py ask "What is on my calendar today?"
    python run_cli.py search "favourite topics" -m memories.json

Environment variables (all optional):
    LLM_PROVIDER        "openai", "groq", or "ollama"
    LLM_MODEL_OPENAI    Model name when LLM_PROVIDER=openai (default: gpt-4.1-mini)
    LLM_MODEL_GROQ      Model name when LLM_PROVIDER=groq (default: llama-3.3-70b-versatile)
    LLM_MODEL_OLLAMA    Model name when LLM_PROVIDER=ollama (default: llama3.2)
    EMBEDDING_PROVIDER  "ollama", "openai", or "huggingface" (default: ollama)
    EMBEDDING_MODEL     Embedding model name (default: nomic-embed-text)
    OPENAI_API_KEY      Required when a provider is openai
    GROQ_API_KEY        Required when LLM_PROVIDER=groq
    OLLAMA_BASE_URL     Ollama server URL (default: http://localhost:11434/)
    AGENT_MAX_ROUNDS    Round cap per user message (default: 8)
    LOG_LEVEL           Logging level (default: WARNING)
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import app

if __name__ == "__main__":
    app()

"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from the environment or
passed explicitly in tests. No module-level globals.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the agent.

    Construct via from_env() or pass explicitly in tests.
    """

    # ── Centralized LLM Provider ────────────────────────────────
    # Allowed: "openai", "groq", "ollama"
    llm_provider: str = "ollama"

    # Model names: only the one matching llm_provider is used.
    llm_model_ollama: str = "llama3.2"
    llm_model_openai: str = "gpt-4.1-mini"
    llm_model_groq: str = "llama-3.3-70b-versatile"

    # Embeddings. Allowed: "ollama", "openai", "huggingface"
    embedding_provider: str = "ollama"
    embedding_model: str = "nomic-embed-text"

    # Connection details
    ollama_base_url: str = "http://localhost:11434/"
    groq_api_key: str = ""
    openai_api_key: str = ""

    # Execution policy
    temperature: float = 0.0
    max_tokens: int = 0                 # 0 = provider default

    # Agent loop
    agent_max_rounds: int = 8
    model_timeout: float = 60.0
    model_max_retries: int = 2
    model_retry_backoff: float = 0.5
    tool_timeout: float = 30.0
    max_concurrent_tools: int = 4

    # Semantic memory
    embedding_timeout: float = 30.0
    memory_collection: str = "UserPreferences"
    context_limit: int = 3
    context_min_relevance: float = 0.7

    log_level: str = "WARNING"

    @property
    def active_llm_model(self) -> str:
        """Return the model name for the currently active LLM provider."""
        if self.llm_provider == "openai":
            return self.llm_model_openai
        elif self.llm_provider == "groq":
            return self.llm_model_groq
        return self.llm_model_ollama

    @classmethod
    def from_env(cls) -> Settings:
        """Build Settings from environment variables (and a .env file if present)."""
        from dotenv import load_dotenv
        load_dotenv()

        return cls(
            llm_provider=os.getenv("LLM_PROVIDER", "ollama"),
            llm_model_ollama=os.getenv("LLM_MODEL_OLLAMA", "llama3.2"),
            llm_model_openai=os.getenv("LLM_MODEL_OPENAI", "gpt-4.1-mini"),
            llm_model_groq=os.getenv("LLM_MODEL_GROQ", "llama-3.3-70b-versatile"),
            embedding_provider=os.getenv("EMBEDDING_PROVIDER", "ollama"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "nomic-embed-text"),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),

            temperature=float(os.getenv("AGENT_TEMPERATURE", "0")),
            max_tokens=int(os.getenv("AGENT_MAX_TOKENS", "0")),

            agent_max_rounds=int(os.getenv("AGENT_MAX_ROUNDS", "8")),
            model_timeout=float(os.getenv("MODEL_TIMEOUT", "60")),
            model_max_retries=int(os.getenv("MODEL_MAX_RETRIES", "2")),
            model_retry_backoff=float(os.getenv("MODEL_RETRY_BACKOFF", "0.5")),
            tool_timeout=float(os.getenv("TOOL_TIMEOUT", "30")),
            max_concurrent_tools=int(os.getenv("MAX_CONCURRENT_TOOLS", "4")),

            embedding_timeout=float(os.getenv("EMBEDDING_TIMEOUT", "30")),
            memory_collection=os.getenv("MEMORY_COLLECTION", "UserPreferences"),
            context_limit=int(os.getenv("CONTEXT_LIMIT", "3")),
            context_min_relevance=float(os.getenv("CONTEXT_MIN_RELEVANCE", "0.7")),

            log_level=os.getenv("LOG_LEVEL", "WARNING"),
        )

"""
infrastructure.llm.llm_builder - Centralized model construction.

Single source of truth for building the chat model that drives the agent
and the embedding model behind semantic memory. The provider is
controlled by the LLM_PROVIDER / EMBEDDING_PROVIDER environment variables.

Supported chat providers:
    - "openai"  → langchain_openai.ChatOpenAI
    - "groq"    → langchain_groq.ChatGroq
    - "ollama"  → langchain_ollama.ChatOllama

Supported embedding providers:
    - "ollama"       → langchain_ollama.OllamaEmbeddings
    - "openai"       → langchain_openai.OpenAIEmbeddings
    - "huggingface"  → langchain_huggingface.HuggingFaceEmbeddings
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)


def build_llm(
    *,
    provider: str,
    model: str,
    temperature: float = 0,
    ollama_base_url: str = "http://localhost:11434/",
    openai_api_key: str = "",
    groq_api_key: str = "",
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """Build a tool-calling chat model for the given provider.

    Args:
        provider: One of "openai", "groq", "ollama".
        model: Model name for the selected provider.
        temperature: Sampling temperature.
        ollama_base_url: Ollama server URL (only used when provider="ollama").
        openai_api_key: API key for OpenAI.
        groq_api_key: API key for Groq.
        max_tokens: Maximum tokens. Defaults to 512 for Groq if not set.

    Returns:
        A configured LangChain chat model.

    Raises:
        ValueError: If the provider is unknown or required credentials are missing.
    """
    provider = provider.lower().strip()

    if provider == "openai":
        from langchain_openai import ChatOpenAI

        if not openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER='openai'")

        kwargs: Dict[str, Any] = {
            "model": model,
            "temperature": temperature,
            "api_key": openai_api_key,
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        logger.info("Building OpenAI chat model (model=%s)", model)
        return ChatOpenAI(**kwargs)

    elif provider == "groq":
        from langchain_groq import ChatGroq

        if not groq_api_key:
            raise ValueError("GROQ_API_KEY is required when LLM_PROVIDER='groq'")

        kwargs = {
            "model": model,
            "temperature": temperature,
            "api_key": groq_api_key,
            "max_tokens": max_tokens if max_tokens is not None else 512,
        }

        logger.info("Building Groq chat model (model=%s)", model)
        return ChatGroq(**kwargs)

    elif provider == "ollama":
        from langchain_ollama import ChatOllama

        kwargs = {
            "model": model,
            "temperature": temperature,
            "base_url": ollama_base_url,
        }
        if max_tokens is not None:
            kwargs["num_predict"] = max_tokens

        logger.info("Building ChatOllama (model=%s)", model)
        return ChatOllama(**kwargs)

    else:
        raise ValueError(
            f"Unsupported LLM_PROVIDER: '{provider}'. "
            "Must be 'openai', 'groq', or 'ollama'."
        )


def build_embeddings(
    *,
    provider: str,
    model: str,
    ollama_base_url: str = "http://localhost:11434/",
    openai_api_key: str = "",
) -> Embeddings:
    """Build the embedding model used by semantic memory.

    Raises:
        ValueError: If the provider is unknown or required credentials are missing.
    """
    provider = provider.lower().strip()

    if provider == "ollama":
        from langchain_ollama import OllamaEmbeddings

        logger.info("Building OllamaEmbeddings (model=%s)", model)
        return OllamaEmbeddings(model=model, base_url=ollama_base_url)

    elif provider == "openai":
        from langchain_openai import OpenAIEmbeddings

        if not openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when EMBEDDING_PROVIDER='openai'")

        logger.info("Building OpenAIEmbeddings (model=%s)", model)
        return OpenAIEmbeddings(model=model, api_key=openai_api_key)

    elif provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        logger.info("Building HuggingFaceEmbeddings (model=%s)", model)
        return HuggingFaceEmbeddings(model_name=model)

    else:
        raise ValueError(
            f"Unsupported EMBEDDING_PROVIDER: '{provider}'. "
            "Must be 'ollama', 'openai', or 'huggingface'."
        )

"""
factory - Composition root for the agent.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, tests) call this factory to get fully
configured sessions.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    factory = ServiceFactory(Settings.from_env())
    await factory.seed_memory([{"id": "pref_1", "text": "User enjoys AI."}])

    session = factory.create_session()
    outcome = await session.send("What should I read next?")
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional

from agent.context import ContextComposer
from agent.executor import AgentExecutor
from agent.prompt import build_system_prompt
from agent.tools.base import ToolDescriptor
from agent.tools.documents import CreateAgendaTool
from agent.tools.echo import EchoTool
from agent.tools.memory_search import SearchMemoryTool
from agent.tools.messaging import Outbox, SendAgendaEmailTool, SendMeetingReminderTool
from agent.tools.moderation import ModerationGuidelinesTool
from agent.tools.registry import ToolRegistry
from agent.tools.schedule import Calendar, NextAvailableSlotTool, TodaysScheduleTool
from agent.tools.text_analysis import (
    AnalyzeSentimentTool,
    DetectLanguageTool,
    DetectToxicityTool,
    TranslateTool,
)
from application.session import AgentSession
from domain.models import ExecutionPolicy, MemoryEntry
from domain.ports import ChatModelPort, EmbeddingPort
from infrastructure.config import Settings
from infrastructure.llm.chat_model import LangChainChatModel
from infrastructure.llm.llm_builder import build_embeddings, build_llm
from infrastructure.rag.embeddings import LangChainEmbedder
from infrastructure.rag.semantic_index import SemanticMemoryIndex

logger = logging.getLogger(__name__)

DEFAULT_TOOLS = (
    "echo",
    "get_todays_schedule",
    "find_next_available_slot",
    "send_meeting_reminder",
    "send_agenda_email",
    "create_agenda",
    "get_moderation_guidelines",
    "analyze_sentiment",
    "detect_toxicity",
    "detect_language",
    "translate",
    "search_memory",
)


class ServiceFactory:
    """Composition root: wires all dependencies together.

    The memory index is shared by every session created from one factory;
    each session gets its own conversation and tool registry.

    Args:
        config:      Settings.
        chat_model:  Optional ChatModelPort override (tests, custom providers).
        embedder:    Optional EmbeddingPort override.
        clock:       Clock used by the calendar tools.
    """

    def __init__(
        self,
        config: Settings,
        chat_model: Optional[ChatModelPort] = None,
        embedder: Optional[EmbeddingPort] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._config = config
        self._chat_model = chat_model
        self._embedder = embedder
        self._clock = clock
        self._memory_index: Optional[SemanticMemoryIndex] = None
        self.outbox = Outbox()

    # ------------------------------------------------------------------
    # Shared resources
    # ------------------------------------------------------------------

    @property
    def config(self) -> Settings:
        return self._config

    @property
    def memory_index(self) -> SemanticMemoryIndex:
        """Lazy singleton for the shared semantic memory."""
        if self._memory_index is None:
            self._memory_index = SemanticMemoryIndex(
                embedder=self._get_embedder(),
                embed_timeout=self._config.embedding_timeout,
            )
        return self._memory_index

    async def seed_memory(
        self,
        records: Iterable[Mapping[str, Any]],
        collection: Optional[str] = None,
    ) -> list[MemoryEntry]:
        """Ingest {id, text, metadata?} records into a collection.

        Raises:
            DuplicateIdError / EmbeddingUnavailableError from the index.
            ValueError: a record lacks 'id' or 'text'.
        """
        target = collection or self._config.memory_collection
        entries = []
        for record in records:
            if not record.get("id") or not record.get("text"):
                raise ValueError(f"Memory record needs 'id' and 'text': {dict(record)!r}")
            metadata = {str(k): str(v) for k, v in (record.get("metadata") or {}).items()}
            entries.append(await self.memory_index.ingest(
                target, str(record["text"]), str(record["id"]), metadata,
            ))
        logger.info("Seeded %d memory entries into '%s'", len(entries), target)
        return entries

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    def create_tool_registry(
        self,
        tool_names: Optional[Iterable[str]] = None,
        extra_tools: Iterable[ToolDescriptor] = (),
    ) -> ToolRegistry:
        """Build a registry with the selected built-in tools plus any extras.

        Raises:
            ValueError: an unknown built-in tool name was requested.
            DuplicateToolNameError: an extra tool reuses a registered name.
        """
        selected = list(DEFAULT_TOOLS if tool_names is None else tool_names)
        builders = self._builtin_tool_builders()
        unknown = [n for n in selected if n not in builders]
        if unknown:
            raise ValueError(f"Unknown built-in tools: {', '.join(unknown)}")

        registry = ToolRegistry()
        for name in selected:
            registry.register(builders[name]())
        for descriptor in extra_tools:
            registry.register(descriptor)
        return registry

    def _builtin_tool_builders(self) -> dict[str, Callable[[], ToolDescriptor]]:
        calendar = Calendar(clock=self._clock)
        return {
            "echo": lambda: EchoTool().descriptor(),
            "get_todays_schedule": lambda: TodaysScheduleTool(calendar).descriptor(),
            "find_next_available_slot": lambda: NextAvailableSlotTool(calendar).descriptor(),
            "send_meeting_reminder": lambda: SendMeetingReminderTool(self.outbox).descriptor(),
            "send_agenda_email": lambda: SendAgendaEmailTool(self.outbox).descriptor(),
            "create_agenda": lambda: CreateAgendaTool().descriptor(),
            "get_moderation_guidelines": lambda: ModerationGuidelinesTool().descriptor(),
            "analyze_sentiment": lambda: AnalyzeSentimentTool(self._get_chat_model()).descriptor(),
            "detect_toxicity": lambda: DetectToxicityTool(self._get_chat_model()).descriptor(),
            "detect_language": lambda: DetectLanguageTool(self._get_chat_model()).descriptor(),
            "translate": lambda: TranslateTool(self._get_chat_model()).descriptor(),
            "search_memory": lambda: SearchMemoryTool(
                self.memory_index, self._config.memory_collection,
            ).descriptor(),
        }

    # ------------------------------------------------------------------
    # Session creation
    # ------------------------------------------------------------------

    def create_session(
        self,
        tools: Optional[ToolRegistry] = None,
        use_memory: bool = True,
        session_id: Optional[str] = None,
    ) -> AgentSession:
        """Create a fully configured AgentSession for one conversation.

        Args:
            tools:       Registry to use; defaults to all built-in tools.
            use_memory:  Enrich user turns with semantic memory hits.
            session_id:  Optional id for tracing.
        """
        registry = tools if tools is not None else self.create_tool_registry()
        cfg = self._config

        executor = AgentExecutor(
            model=self._get_chat_model(),
            tools=registry,
            policy=ExecutionPolicy(
                temperature=cfg.temperature,
                max_tokens=cfg.max_tokens or None,
            ),
            max_rounds=cfg.agent_max_rounds,
            model_retries=cfg.model_max_retries,
            retry_backoff=cfg.model_retry_backoff,
            tool_timeout=cfg.tool_timeout,
            max_concurrent_tools=cfg.max_concurrent_tools,
        )
        composer = ContextComposer(
            index=self.memory_index,
            collection=cfg.memory_collection,
            limit=cfg.context_limit,
            min_relevance=cfg.context_min_relevance,
        ) if use_memory else None

        session = AgentSession(
            executor=executor,
            system_prompt=build_system_prompt(registry),
            composer=composer,
            session_id=session_id,
        )
        logger.info(
            "Created session %s with %d tool(s), memory=%s",
            session.session_id, len(registry), use_memory,
        )
        return session

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _get_chat_model(self) -> ChatModelPort:
        if self._chat_model is None:
            cfg = self._config
            llm = build_llm(
                provider=cfg.llm_provider,
                model=cfg.active_llm_model,
                temperature=cfg.temperature,
                ollama_base_url=cfg.ollama_base_url,
                openai_api_key=cfg.openai_api_key,
                groq_api_key=cfg.groq_api_key,
                max_tokens=cfg.max_tokens or None,
            )
            self._chat_model = LangChainChatModel(llm, timeout=cfg.model_timeout)
        return self._chat_model

    def _get_embedder(self) -> EmbeddingPort:
        if self._embedder is None:
            cfg = self._config
            self._embedder = LangChainEmbedder(build_embeddings(
                provider=cfg.embedding_provider,
                model=cfg.embedding_model,
                ollama_base_url=cfg.ollama_base_url,
                openai_api_key=cfg.openai_api_key,
            ))
        return self._embedder

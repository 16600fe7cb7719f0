"""Tests for AgentSession and the composition root."""

import asyncio

import pytest

from agent.context import NO_CONTEXT_MARKER
from agent.prompt import build_system_prompt
from agent.tools.registry import ToolRegistry
from application.session import AgentSession
from domain.exceptions import (
    InvalidTurnError,
    MaxRoundsExceededError,
    SessionCancelledError,
    SessionFailedError,
)
from domain.models import AgentOutcome, ModelReply, OutcomeStatus, Role
from factory import DEFAULT_TOOLS, ServiceFactory

from conftest import ScriptedChatModel, TokenEmbedder, call


def _factory(settings, model, fixed_clock=None, embedder=None):
    kwargs = {"chat_model": model, "embedder": embedder or TokenEmbedder()}
    if fixed_clock is not None:
        kwargs["clock"] = fixed_clock
    return ServiceFactory(settings, **kwargs)


class TestSession:
    async def test_user_turn_is_enriched_with_memory(self, settings):
        model = ScriptedChatModel(ModelReply.answer("Try the new AI book."))
        factory = _factory(settings, model)
        await factory.seed_memory([
            {"id": "p1", "text": "User enjoys topic AI"},
            {"id": "p2", "text": "User is working on topic gardening"},
        ])
        session = factory.create_session()

        outcome = await session.send("topic AI")

        assert outcome.ok
        user_turn = next(t for t in outcome.turns if t.role is Role.USER)
        assert user_turn.content.startswith("User Query: topic AI\n\nRelevant User Context:\n")
        assert "- User enjoys topic AI (relevance: " in user_turn.content
        assert "gardening" not in user_turn.content

    async def test_system_prompt_lists_tools(self, settings):
        session = _factory(settings, ScriptedChatModel(ModelReply.answer("x"))).create_session()

        system_turn = session.history()[0]

        assert system_turn.role is Role.SYSTEM
        for name in DEFAULT_TOOLS:
            assert f"- {name}:" in system_turn.content

    async def test_without_memory_uses_raw_text(self, settings):
        model = ScriptedChatModel(ModelReply.answer("ok"))
        session = _factory(settings, model).create_session(use_memory=False)

        await session.send("plain question")

        assert session.history()[1].content == "plain question"

    async def test_empty_memory_renders_marker(self, settings):
        session = _factory(settings, ScriptedChatModel(ModelReply.answer("ok"))).create_session()

        await session.send("anything")

        assert NO_CONTEXT_MARKER in session.history()[1].content

    async def test_blank_input_rejected(self, settings):
        session = _factory(settings, ScriptedChatModel(ModelReply.answer("ok"))).create_session()
        with pytest.raises(InvalidTurnError):
            await session.send("   ")

    async def test_history_grows_across_messages(self, settings):
        model = ScriptedChatModel(ModelReply.answer("first"), ModelReply.answer("second"))
        session = _factory(settings, model).create_session(use_memory=False)

        await session.send("one")
        outcome = await session.send("two")

        assert outcome.answer == "second"
        assert [t.role for t in session.history()] == [
            Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.USER, Role.ASSISTANT,
        ]

    async def test_sessions_are_isolated(self, settings):
        factory = _factory(settings, ScriptedChatModel(ModelReply.answer("ok")))
        first = factory.create_session()
        second = factory.create_session()

        await first.send("hello")

        assert first.session_id != second.session_id
        assert first.tools is not second.tools
        assert len(second.history()) == 1

    async def test_cancel_during_retrieval_appends_nothing(self, settings):
        class SlowEmbedder(TokenEmbedder):
            async def embed(self, text):
                await asyncio.sleep(5)
                return await super().embed(text)

        factory = _factory(settings, ScriptedChatModel(ModelReply.answer("ok")))
        await factory.seed_memory([{"id": "1", "text": "a fact"}])
        factory.memory_index._embedder = SlowEmbedder()
        session = factory.create_session()
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.02, cancel.set)

        outcome = await session.send("question", cancel)

        assert outcome.status is OutcomeStatus.CANCELLED
        assert len(session.history()) == 1

    async def test_custom_session_without_system_prompt(self):
        from agent.executor import AgentExecutor

        executor = AgentExecutor(ScriptedChatModel(ModelReply.answer("hi")), ToolRegistry())
        session = AgentSession(executor, session_id="fixed")

        outcome = await session.send("hello")

        assert session.session_id == "fixed"
        assert outcome.turns[0].role is Role.USER


class TestFactoryTools:
    async def test_scheduling_flow(self, settings, fixed_clock):
        def plan(turns):
            tool_results = [t for t in turns if t.role is Role.TOOL]
            if not tool_results:
                return ModelReply.calls(
                    call("find_next_available_slot", "slot", duration_minutes=30),
                    call("send_meeting_reminder", "remind",
                         recipient="ana@example.com", meeting_time="10:15 AM", topic="Sync"),
                )
            return ModelReply.answer(" / ".join(t.content for t in tool_results))

        factory = _factory(settings, ScriptedChatModel(plan), fixed_clock)
        session = factory.create_session(use_memory=False)

        outcome = await session.send("Book 30 minutes with Ana and remind her")

        assert outcome.answer == (
            "Today at 10:15 AM / ✓ Reminder sent to ana@example.com for Sync at 10:15 AM"
        )
        assert factory.outbox.messages[0].recipient == "ana@example.com"

    def test_tool_selection(self, settings):
        factory = _factory(settings, ScriptedChatModel(ModelReply.answer("x")))

        registry = factory.create_tool_registry(["echo", "create_agenda"])

        assert registry.names() == ["echo", "create_agenda"]

    async def test_text_tools_use_session_model(self, settings):
        model = ScriptedChatModel(ModelReply.answer("fr"))
        factory = _factory(settings, model)
        registry = factory.create_tool_registry(["detect_language", "translate"])

        assert await registry.invoke("detect_language", {"text": "bonjour"}) == "fr"
        assert model.call_count == 1
        assert "call detect_toxicity on the exact text" in build_system_prompt(
            factory.create_tool_registry()
        )

    def test_unknown_builtin_rejected(self, settings):
        factory = _factory(settings, ScriptedChatModel(ModelReply.answer("x")))
        with pytest.raises(ValueError, match="nope"):
            factory.create_tool_registry(["nope"])

    async def test_seed_memory_validates_records(self, settings):
        factory = _factory(settings, ScriptedChatModel(ModelReply.answer("x")))
        with pytest.raises(ValueError):
            await factory.seed_memory([{"id": "1"}])

    async def test_seed_memory_stringifies_metadata(self, settings):
        factory = _factory(settings, ScriptedChatModel(ModelReply.answer("x")))

        entries = await factory.seed_memory(
            [{"id": "1", "text": "fact", "metadata": {"year": 2024}}], collection="Other",
        )

        assert entries[0].metadata == {"year": "2024"}
        assert factory.memory_index.count("Other") == 1


class TestOutcome:
    def test_answered_does_not_raise(self):
        AgentOutcome(OutcomeStatus.ANSWERED, answer="ok").raise_for_status()

    @pytest.mark.parametrize("status, error", [
        (OutcomeStatus.FAILED, SessionFailedError),
        (OutcomeStatus.MAX_ROUNDS_EXCEEDED, MaxRoundsExceededError),
        (OutcomeStatus.CANCELLED, SessionCancelledError),
    ])
    def test_raise_for_status(self, status, error):
        outcome = AgentOutcome(status, note="diagnostic")
        assert not outcome.ok
        with pytest.raises(error, match="diagnostic"):
            outcome.raise_for_status()

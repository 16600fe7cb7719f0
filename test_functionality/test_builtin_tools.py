"""Tests for the built-in tools."""

from datetime import datetime, time

import pytest

from agent.tools.documents import CreateAgendaTool
from agent.tools.echo import EchoTool
from agent.tools.memory_search import SearchMemoryTool
from agent.tools.messaging import Outbox, SendAgendaEmailTool, SendMeetingReminderTool
from agent.tools.moderation import MODERATION_GUIDELINES, ModerationGuidelinesTool
from agent.tools.registry import ToolRegistry
from agent.tools.schedule import Calendar, Meeting, NextAvailableSlotTool, TodaysScheduleTool
from agent.tools.text_analysis import (
    AnalyzeSentimentTool,
    DetectLanguageTool,
    DetectToxicityTool,
    TranslateTool,
)
from domain.exceptions import (
    InvalidArgumentsError,
    ModelServiceUnavailableError,
    ToolExecutionFailedError,
)
from domain.models import ModelReply, Role

from conftest import ScriptedChatModel


class TestCalendar:
    def test_todays_schedule(self, fixed_clock):
        assert Calendar(clock=fixed_clock).todays_schedule() == (
            "9:00 AM - Team Standup\n2:00 PM - Client Review\n4:00 PM - Planning"
        )

    def test_empty_calendar(self):
        assert Calendar(meetings=()).todays_schedule() == "No meetings today."

    def test_slot_rounds_up_to_quarter_hour(self, fixed_clock):
        # 10:07 -> 10:15, free until the 2 PM review
        assert Calendar(clock=fixed_clock).next_available_slot(30) == "Today at 10:15 AM"

    def test_slot_skips_meetings(self):
        clock = lambda: datetime(2024, 5, 15, 13, 50)
        # rounds up to 2 PM, inside the review; the next gap opens at 3 PM
        assert Calendar(clock=clock).next_available_slot(30) == "Today at 3:00 PM"

    def test_slot_rolls_over_to_tomorrow(self):
        clock = lambda: datetime(2024, 5, 15, 16, 45)
        assert Calendar(clock=clock).next_available_slot(60) == "Tomorrow at 9:15 AM"

    def test_fully_booked_week(self):
        busy = [Meeting(time(9, 0), "All day", 8 * 60)]
        clock = lambda: datetime(2024, 5, 15, 8, 0)
        calendar = Calendar(meetings=busy, clock=clock, day_end=time(17, 0))
        assert calendar.next_available_slot(30) == "No 30-minute slot available in the next 7 days"

    def test_non_positive_duration(self, fixed_clock):
        with pytest.raises(ValueError):
            Calendar(clock=fixed_clock).next_available_slot(0)

    async def test_tools_through_registry(self, fixed_clock):
        calendar = Calendar(clock=fixed_clock)
        reg = ToolRegistry()
        reg.register(TodaysScheduleTool(calendar).descriptor())
        reg.register(NextAvailableSlotTool(calendar).descriptor())

        assert "Team Standup" in await reg.invoke("get_todays_schedule", {})
        assert await reg.invoke("find_next_available_slot", {"duration_minutes": "30"}) == "Today at 10:15 AM"

    async def test_bad_duration_is_execution_failure(self, fixed_clock):
        reg = ToolRegistry()
        reg.register(NextAvailableSlotTool(Calendar(clock=fixed_clock)).descriptor())

        with pytest.raises(ToolExecutionFailedError):
            await reg.invoke("find_next_available_slot", {"duration_minutes": -5})


class TestMessaging:
    async def test_meeting_reminder(self):
        outbox = Outbox()
        tool = SendMeetingReminderTool(outbox)

        result = await tool.execute(recipient="ana@example.com", meeting_time="2:00 PM", topic="Budget")

        assert result == "✓ Reminder sent to ana@example.com for Budget at 2:00 PM"
        assert outbox.messages[0].subject == "Reminder: Budget"

    async def test_agenda_email(self):
        outbox = Outbox()
        result = await SendAgendaEmailTool(outbox).execute(recipient="team", agenda="1. Intro")

        assert result == "✓ Agenda sent to team"
        assert outbox.messages[0].body == "1. Intro"

    def test_empty_recipient_rejected(self):
        with pytest.raises(ValueError):
            Outbox().send("  ", "s", "b")


class TestDocuments:
    async def test_agenda_lists_attendees_and_items(self):
        text = await CreateAgendaTool().execute(topic="Roadmap", attendees="Ana, Ben ,")

        lines = text.splitlines()
        assert lines[:4] == ["MEETING AGENDA", "Topic: Roadmap", "Attendees: Ana, Ben", "Items:"]
        assert lines[-1] == "4. Closing"

    async def test_agenda_without_attendees(self):
        text = await CreateAgendaTool().execute(topic="Solo", attendees="")
        assert "Attendees: TBD" in text


class TestMisc:
    async def test_echo(self):
        assert await EchoTool().execute(text="same") == "same"

    async def test_moderation_guidelines(self):
        assert await ModerationGuidelinesTool().execute() == MODERATION_GUIDELINES
        assert "BLOCK immediately" in MODERATION_GUIDELINES


class TestSearchMemory:
    async def test_returns_ranked_facts(self, memory_index):
        await memory_index.ingest("Prefs", "User enjoys hiking", "1")
        await memory_index.ingest("Prefs", "User dislikes spicy food", "2")
        reg = ToolRegistry()
        reg.register(SearchMemoryTool(memory_index, "Prefs").descriptor())

        result = await reg.invoke("search_memory", {"query": "enjoys hiking"})

        assert result.startswith("- User enjoys hiking (relevance: ")
        assert "spicy" not in result

    async def test_null_limit_falls_back_to_default(self, memory_index):
        await memory_index.ingest("Prefs", "User enjoys python", "1")
        reg = ToolRegistry()
        reg.register(SearchMemoryTool(memory_index, "Prefs").descriptor())

        result = await reg.invoke("search_memory", {"query": "python", "limit": None})

        assert result.startswith("- User enjoys python (relevance: ")

    async def test_no_results_message(self, memory_index):
        tool = SearchMemoryTool(memory_index, "Prefs")
        assert await tool.execute(query="anything") == "No memories found for 'anything'."

    async def test_limit_is_clamped(self, memory_index):
        for i in range(12):
            await memory_index.ingest("Prefs", f"note {i}", str(i))
        tool = SearchMemoryTool(memory_index, "Prefs", min_relevance=0.0)

        assert len((await tool.execute(query="note", limit=50)).splitlines()) == 10
        assert len((await tool.execute(query="note", limit=0)).splitlines()) == 1


class TestTextAnalysis:
    async def test_sentiment_prompt_and_reply(self):
        verdict = '{"sentiment": "positive", "confidence": 0.9, "reasoning": "clear praise"}'
        model = ScriptedChatModel(ModelReply.answer(f"  {verdict}\n"))

        result = await AnalyzeSentimentTool(model).execute(text="I love this product")

        assert result == verdict
        turns, tools, policy = model.calls[0]
        assert tools == ()
        assert [t.role for t in turns] == [Role.USER]
        assert "Analyze the sentiment" in turns[0].content
        assert turns[0].content.endswith("I love this product")
        assert policy.temperature == 0.3

    async def test_toxicity_prompt_includes_guidelines(self):
        model = ScriptedChatModel(ModelReply.answer('{"isToxic": false}'))

        await DetectToxicityTool(model).execute(text="Have a nice day")

        prompt = model.calls[0][0][0].content
        assert "BLOCK immediately" in prompt
        assert '"recommendation": "allow" or "flag" or "block"' in prompt
        assert prompt.endswith("Have a nice day")

    async def test_language_code_is_normalized(self):
        model = ScriptedChatModel(ModelReply.answer(' "ES".\n'))

        assert await DetectLanguageTool(model).execute(text="Hola, ¿qué tal?") == "es"
        assert model.calls[0][2].temperature == 0.0

    async def test_translate_through_registry(self):
        model = ScriptedChatModel(ModelReply.answer("Hola mundo"))
        reg = ToolRegistry()
        reg.register(TranslateTool(model).descriptor())

        result = await reg.invoke("translate", {"text": "Hello world", "target_language": "Spanish"})

        assert result == "Hola mundo"
        prompt = model.calls[0][0][0].content
        assert "to Spanish" in prompt
        assert prompt.endswith("Hello world")
        assert model.calls[0][2].max_tokens == 500

    async def test_translate_requires_target_language(self):
        reg = ToolRegistry()
        reg.register(TranslateTool(ScriptedChatModel(ModelReply.answer("x"))).descriptor())

        with pytest.raises(InvalidArgumentsError, match="target_language"):
            await reg.invoke("translate", {"text": "Hello"})

    async def test_braces_in_text_are_kept(self):
        model = ScriptedChatModel(ModelReply.answer('{"sentiment": "neutral"}'))

        await AnalyzeSentimentTool(model).execute(text="config = {a: 1}")

        assert model.calls[0][0][0].content.endswith("config = {a: 1}")

    async def test_model_outage_is_execution_failure(self):
        reg = ToolRegistry()
        model = ScriptedChatModel(ModelServiceUnavailableError("HTTP 503"))
        reg.register(DetectLanguageTool(model).descriptor())

        with pytest.raises(ToolExecutionFailedError, match="HTTP 503"):
            await reg.invoke("detect_language", {"text": "bonjour"})

    async def test_empty_model_reply_is_execution_failure(self):
        reg = ToolRegistry()
        reg.register(AnalyzeSentimentTool(ScriptedChatModel(ModelReply.answer(""))).descriptor())

        with pytest.raises(ToolExecutionFailedError, match="empty response"):
            await reg.invoke("analyze_sentiment", {"text": "meh"})

"""
agent.tools.schedule - Calendar lookups for the planning tools.

Meetings repeat every day. Working hours are 09:00-17:00 and free slots
start on quarter-hour boundaries. The clock is injectable so slot search
is testable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable

from agent.tools.base import BaseTool, ToolParameter

_SEARCH_DAYS = 7


@dataclass(frozen=True)
class Meeting:
    start: time
    title: str
    duration_minutes: int = 30


DEFAULT_MEETINGS = (
    Meeting(time(9, 0), "Team Standup", 15),
    Meeting(time(14, 0), "Client Review", 60),
    Meeting(time(16, 0), "Planning", 30),
)


class Calendar:
    """A daily meeting list with free-slot search."""

    def __init__(
        self,
        meetings: Iterable[Meeting] = DEFAULT_MEETINGS,
        clock: Callable[[], datetime] = datetime.now,
        day_start: time = time(9, 0),
        day_end: time = time(17, 0),
    ):
        self._meetings = sorted(meetings, key=lambda m: m.start)
        self._clock = clock
        self._day_start = day_start
        self._day_end = day_end

    def todays_schedule(self) -> str:
        if not self._meetings:
            return "No meetings today."
        return "\n".join(f"{_format_time(m.start)} - {m.title}" for m in self._meetings)

    def next_available_slot(self, duration_minutes: int) -> str:
        if duration_minutes <= 0:
            raise ValueError("duration_minutes must be positive")

        now = self._clock()
        length = timedelta(minutes=duration_minutes)
        for offset in range(_SEARCH_DAYS):
            day = now.date() + timedelta(days=offset)
            candidate = datetime.combine(day, self._day_start)
            if offset == 0:
                candidate = max(candidate, _round_up_quarter(now))

            for meeting in self._meetings:
                start = datetime.combine(day, meeting.start)
                end = start + timedelta(minutes=meeting.duration_minutes)
                if candidate + length <= start:
                    return _format_slot(candidate, now.date())
                candidate = max(candidate, end)

            if candidate + length <= datetime.combine(day, self._day_end):
                return _format_slot(candidate, now.date())

        return f"No {duration_minutes}-minute slot available in the next {_SEARCH_DAYS} days"


class TodaysScheduleTool(BaseTool):
    name = "get_todays_schedule"
    description = (
        "Returns today's meetings, one per line. "
        "Example: 9:00 AM - Team Standup"
    )

    def __init__(self, calendar: Calendar):
        self._calendar = calendar

    async def execute(self, **kwargs) -> str:
        return self._calendar.todays_schedule()


class NextAvailableSlotTool(BaseTool):
    name = "find_next_available_slot"
    description = (
        "Find the next free time slot for a meeting of the given duration. "
        "Returns e.g. 'Today at 4:00 PM' or 'Tomorrow at 10:00 AM'."
    )
    parameters = {
        "duration_minutes": ToolParameter("integer", "Meeting duration in minutes"),
    }

    def __init__(self, calendar: Calendar):
        self._calendar = calendar

    async def execute(self, duration_minutes: int = 30, **kwargs) -> str:
        return self._calendar.next_available_slot(duration_minutes)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _round_up_quarter(moment: datetime) -> datetime:
    base = moment.replace(second=0, microsecond=0)
    if base < moment:
        base += timedelta(minutes=1)
    remainder = base.minute % 15
    if remainder:
        base += timedelta(minutes=15 - remainder)
    return base


def _format_time(value: time) -> str:
    return value.strftime("%I:%M %p").lstrip("0")


def _format_slot(slot: datetime, today: date) -> str:
    days = (slot.date() - today).days
    if days == 0:
        label = "Today"
    elif days == 1:
        label = "Tomorrow"
    else:
        label = slot.strftime("%A")
    return f"{label} at {_format_time(slot.time())}"

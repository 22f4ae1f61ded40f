"""Shared fakes for the reminder service tests."""

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from health_server.errors import PersistenceError
from health_server.services.reminders.lifecycle import ReminderLifecycleManager
from health_server.services.reminders.models import (
    ActivityProfile,
    DeliveryResult,
    Frequency,
    HealthReport,
    Reminder,
    ReminderCategory,
    UserContact,
    WeeklyPlan,
)
from health_server.services.reminders.suggester import TimeSuggester

UTC = timezone.utc


def at(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class InMemoryReminderStore:
    """Reminder store, user directory and source records held in dicts."""

    def __init__(self):
        self.reminders: Dict[str, Reminder] = {}
        self.users: Dict[str, UserContact] = {}
        self.reports: Dict[str, HealthReport] = {}
        self.plans: Dict[str, WeeklyPlan] = {}
        self.available = True
        self.fail_updates_for: set = set()
        self.fail_user_lookup = False
        self.updates: List[tuple] = []
        self._ids = itertools.count(1)

    def add(self, reminder: Reminder) -> Reminder:
        stored = reminder.model_copy(update={"id": reminder.id or str(next(self._ids))})
        self.reminders[stored.id] = stored
        return stored

    async def is_available(self) -> bool:
        return self.available

    async def find_by_id(self, reminder_id: str) -> Optional[Reminder]:
        return self.reminders.get(reminder_id)

    async def find(self, filters: Dict[str, Any]) -> List[Reminder]:
        def matches(reminder):
            return all(getattr(reminder, key) == value for key, value in filters.items())
        return [r for r in self.reminders.values() if matches(r)]

    async def find_for_owner(self, owner_id, is_active=None, category=None) -> List[Reminder]:
        filters: Dict[str, Any] = {"owner_id": owner_id}
        if is_active is not None:
            filters["is_active"] = is_active
        if category is not None:
            filters["category"] = category
        return await self.find(filters)

    async def find_due(self, start: datetime, end: datetime) -> List[Reminder]:
        return [
            r for r in self.reminders.values()
            if r.is_active and r.next_reminder is not None and start <= r.next_reminder < end
        ]

    async def find_stale(self, before: datetime) -> List[Reminder]:
        return [
            r for r in self.reminders.values()
            if r.is_active
            and r.next_reminder is not None
            and r.next_reminder < before
        ]

    async def create(self, reminder: Reminder) -> Reminder:
        return self.add(reminder)

    async def update_by_id(self, reminder_id: str, patch: Dict[str, Any]) -> Optional[Reminder]:
        if reminder_id in self.fail_updates_for:
            raise PersistenceError(f"update of {reminder_id} failed")
        current = self.reminders.get(reminder_id)
        if current is None:
            return None
        self.updates.append((reminder_id, dict(patch)))
        updated = Reminder.model_validate({**current.model_dump(), **patch})
        self.reminders[reminder_id] = updated
        return updated

    async def save(self, reminder: Reminder) -> Reminder:
        return self.add(reminder)

    async def delete_by_id(self, reminder_id: str) -> bool:
        return self.reminders.pop(reminder_id, None) is not None

    async def find_user(self, user_id: str) -> Optional[UserContact]:
        if self.fail_user_lookup:
            raise PersistenceError("users table unreachable")
        return self.users.get(user_id)

    async def get_health_report(self, report_id: str) -> Optional[HealthReport]:
        return self.reports.get(report_id)

    async def get_weekly_plan(self, plan_id: str) -> Optional[WeeklyPlan]:
        return self.plans.get(plan_id)


class ScriptedGenerator:
    """Text generator that replays a reply, raises, or stalls."""

    def __init__(self, reply: str = "08:30", error: Optional[Exception] = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


class RecordingDispatcher:
    def __init__(self, raise_for=(), fail_for=(), delay: float = 0.0):
        self.raise_for = set(raise_for)
        self.fail_for = set(fail_for)
        self.delay = delay
        self.sent: List[tuple] = []

    async def deliver(self, recipient_address, recipient_name, reminder) -> DeliveryResult:
        if self.delay:
            await asyncio.sleep(self.delay)
        if reminder.id in self.raise_for:
            raise RuntimeError("smtp exploded")
        self.sent.append((recipient_address, recipient_name, reminder.id))
        if reminder.id in self.fail_for:
            return DeliveryResult(success=False, error="mailbox full")
        return DeliveryResult(success=True, message_id=f"<{reminder.id}@test>")


def make_reminder(**overrides) -> Reminder:
    data = dict(
        owner_id="user-1",
        category=ReminderCategory.MEDICINE,
        title="Take aspirin",
        scheduled_time=at(2024, 1, 1, 9, 0),
        frequency=Frequency.DAILY,
    )
    data.update(overrides)
    return Reminder(**data)


@pytest.fixture
def store() -> InMemoryReminderStore:
    return InMemoryReminderStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(at(2024, 1, 5, 10, 0))


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def profile() -> ActivityProfile:
    return ActivityProfile(sleep_time="22:00", wake_time="07:00", meal_times="08:00, 13:00, 19:00")


@pytest.fixture
def manager(store, generator, clock, profile) -> ReminderLifecycleManager:
    return ReminderLifecycleManager(
        store=store,
        suggester=TimeSuggester(generator, timeout_seconds=0.5),
        clock=clock,
        sources=store,
        default_profile=profile,
    )

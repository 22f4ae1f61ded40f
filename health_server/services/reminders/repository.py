"""Persistence adapters for reminders and the records they reference."""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

from pydantic_core import to_jsonable_python

from ...errors import PersistenceError
from ...logging_config import get_logger
from .models import (
    HealthReport,
    Reminder,
    ReminderCategory,
    UserContact,
    WeeklyPlan,
)

logger = get_logger(__name__)

T = TypeVar("T")


class ReminderStore(Protocol):
    """Operations the reminder services need from the reminder collection."""

    async def is_available(self) -> bool: ...

    async def find_by_id(self, reminder_id: str) -> Optional[Reminder]: ...

    async def find(self, filters: Dict[str, Any]) -> List[Reminder]: ...

    async def find_for_owner(
        self,
        owner_id: str,
        is_active: Optional[bool] = None,
        category: Optional[ReminderCategory] = None,
    ) -> List[Reminder]: ...

    async def find_due(self, start: datetime, end: datetime) -> List[Reminder]: ...

    async def find_stale(self, before: datetime) -> List[Reminder]: ...

    async def create(self, reminder: Reminder) -> Reminder: ...

    async def update_by_id(self, reminder_id: str, patch: Dict[str, Any]) -> Optional[Reminder]: ...

    async def save(self, reminder: Reminder) -> Reminder: ...

    async def delete_by_id(self, reminder_id: str) -> bool: ...


class UserDirectory(Protocol):
    async def find_user(self, user_id: str) -> Optional[UserContact]: ...


class SourceRecords(Protocol):
    """Saved reports and plans that reminders can be derived from."""

    async def get_health_report(self, report_id: str) -> Optional[HealthReport]: ...

    async def get_weekly_plan(self, plan_id: str) -> Optional[WeeklyPlan]: ...


def serialize_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Convert datetimes, enums and nested models to JSON column values."""
    return to_jsonable_python(patch)


class SupabaseReminderStore:
    """Reminder, user, report and plan access over Supabase tables.

    The Supabase client is synchronous, so each call runs in a worker thread
    and is abandoned (reported as a PersistenceError) after ``timeout_seconds``.
    """

    REMINDERS = "reminders"
    USERS = "users"
    REPORTS = "health_reports"
    PLANS = "weekly_plans"

    def __init__(self, client, timeout_seconds: float = 10.0):
        self.client = client
        self.timeout_seconds = timeout_seconds

    async def _run(self, action: str, call: Callable[[], T]) -> T:
        if not self.client:
            raise PersistenceError("Database connection not available")
        try:
            return await asyncio.wait_for(asyncio.to_thread(call), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Supabase {action} timed out after {self.timeout_seconds}s")
            raise PersistenceError(f"{action} timed out")
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Supabase {action} failed: {e}")
            raise PersistenceError(f"{action} failed: {e}") from e

    def _reminders(self):
        return self.client.table(self.REMINDERS)

    async def is_available(self) -> bool:
        if not self.client:
            return False
        try:
            await self._run("availability check", lambda: self._reminders().select('id').limit(1).execute())
            return True
        except PersistenceError:
            return False

    async def find_by_id(self, reminder_id: str) -> Optional[Reminder]:
        result = await self._run(
            "find reminder",
            lambda: self._reminders().select('*').eq('id', reminder_id).limit(1).execute(),
        )
        rows = result.data or []
        return Reminder.from_row(rows[0]) if rows else None

    async def find(self, filters: Dict[str, Any]) -> List[Reminder]:
        encoded = serialize_patch(filters)

        def _query():
            query = self._reminders().select('*')
            for column, value in encoded.items():
                query = query.eq(column, value)
            return query.execute()

        result = await self._run("find reminders", _query)
        return [Reminder.from_row(row) for row in result.data or []]

    async def find_for_owner(
        self,
        owner_id: str,
        is_active: Optional[bool] = None,
        category: Optional[ReminderCategory] = None,
    ) -> List[Reminder]:
        filters: Dict[str, Any] = {"owner_id": owner_id}
        if is_active is not None:
            filters["is_active"] = is_active
        if category is not None:
            filters["category"] = category
        return await self.find(filters)

    async def find_due(self, start: datetime, end: datetime) -> List[Reminder]:
        result = await self._run(
            "find due reminders",
            lambda: (
                self._reminders()
                .select('*')
                .eq('is_active', True)
                .gte('next_reminder', start.isoformat())
                .lt('next_reminder', end.isoformat())
                .order('next_reminder', desc=False)
                .execute()
            ),
        )
        return [Reminder.from_row(row) for row in result.data or []]

    async def find_stale(self, before: datetime) -> List[Reminder]:
        result = await self._run(
            "find stale reminders",
            lambda: (
                self._reminders()
                .select('*')
                .eq('is_active', True)
                .lt('next_reminder', before.isoformat())
                .execute()
            ),
        )
        return [Reminder.from_row(row) for row in result.data or []]

    async def create(self, reminder: Reminder) -> Reminder:
        row = reminder.to_row()
        result = await self._run("create reminder", lambda: self._reminders().insert(row).execute())
        if not result.data:
            raise PersistenceError("Failed to insert reminder into database")
        return Reminder.from_row(result.data[0])

    async def update_by_id(self, reminder_id: str, patch: Dict[str, Any]) -> Optional[Reminder]:
        encoded = serialize_patch(patch)
        result = await self._run(
            "update reminder",
            lambda: self._reminders().update(encoded).eq('id', reminder_id).execute(),
        )
        rows = result.data or []
        return Reminder.from_row(rows[0]) if rows else None

    async def save(self, reminder: Reminder) -> Reminder:
        if reminder.id is None:
            return await self.create(reminder)
        saved = await self.update_by_id(reminder.id, reminder.to_row())
        if saved is None:
            raise PersistenceError(f"Reminder {reminder.id} vanished during save")
        return saved

    async def delete_by_id(self, reminder_id: str) -> bool:
        result = await self._run(
            "delete reminder",
            lambda: self._reminders().delete().eq('id', reminder_id).execute(),
        )
        return bool(result.data)

    async def find_user(self, user_id: str) -> Optional[UserContact]:
        result = await self._run(
            "find user",
            lambda: self.client.table(self.USERS).select('id, name, email').eq('id', user_id).limit(1).execute(),
        )
        rows = result.data or []
        return UserContact.model_validate(rows[0]) if rows else None

    async def get_health_report(self, report_id: str) -> Optional[HealthReport]:
        result = await self._run(
            "find health report",
            lambda: self.client.table(self.REPORTS).select('id, user_id, medicines').eq('id', report_id).limit(1).execute(),
        )
        rows = result.data or []
        return HealthReport.model_validate(rows[0]) if rows else None

    async def get_weekly_plan(self, plan_id: str) -> Optional[WeeklyPlan]:
        result = await self._run(
            "find weekly plan",
            lambda: self.client.table(self.PLANS).select('id, user_id, days').eq('id', plan_id).limit(1).execute(),
        )
        rows = result.data or []
        return WeeklyPlan.model_validate(rows[0]) if rows else None

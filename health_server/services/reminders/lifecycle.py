"""Create, update, complete and delete reminders.

Every mutation that touches the schedule (anchor time, frequency or weekdays)
recomputes ``next_reminder`` before anything is persisted. Callers may pass
``now`` explicitly; otherwise the manager's clock is read once per operation.
"""

from datetime import datetime, tzinfo
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ...errors import NotFoundError, ValidationError
from ...logging_config import get_logger
from .models import (
    PRIORITY_RANK,
    SCHEDULE_FIELDS,
    ActivityProfile,
    Frequency,
    Priority,
    Reminder,
    ReminderCategory,
    ReminderCreate,
    ReminderMetadata,
    ReminderUpdate,
)
from .recurrence import compute_next, project_time_of_day
from .repository import ReminderStore, SourceRecords
from .suggester import TimeSuggester

logger = get_logger(__name__)

MAX_REPORT_MEDICINES = 5
MAX_PLAN_ITEMS_IN_DESCRIPTION = 3
REPORT_REMINDER_DESCRIPTION = "Medicine reminder from your health report"


def _describe_errors(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "request"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def _require_weekdays(frequency: Frequency, days_of_week: List[int]) -> None:
    if frequency is Frequency.WEEKLY and not days_of_week:
        raise ValidationError("Weekly reminders need at least one day in days_of_week")


class ReminderLifecycleManager:
    """Owns reminder state transitions on behalf of request handlers."""

    def __init__(
        self,
        store: ReminderStore,
        suggester: TimeSuggester,
        clock: Callable[[], datetime],
        sources: Optional[SourceRecords] = None,
        default_profile: Optional[ActivityProfile] = None,
    ):
        self.store = store
        self.suggester = suggester
        self.clock = clock
        self.sources = sources
        self.default_profile = default_profile or ActivityProfile()

    def _now(self, now: Optional[datetime]) -> datetime:
        return now if now is not None else self.clock()

    @staticmethod
    def _localize(moment: datetime, reference: datetime) -> datetime:
        """Give naive request datetimes the timezone of the reference clock."""
        zone: Optional[tzinfo] = reference.tzinfo
        if moment.tzinfo is None and zone is not None:
            return moment.replace(tzinfo=zone)
        return moment

    async def _suggested_anchor(
        self,
        category: ReminderCategory,
        profile: Optional[ActivityProfile],
        now: datetime,
    ) -> datetime:
        suggestion = await self.suggester.suggest_time(category, profile or self.default_profile)
        return project_time_of_day(suggestion.hour, suggestion.minute, now)

    async def _get(self, reminder_id: str) -> Reminder:
        reminder = await self.store.find_by_id(reminder_id)
        if reminder is None:
            raise NotFoundError(f"Reminder {reminder_id} not found")
        return reminder

    async def create(
        self,
        fields: Mapping[str, Any],
        profile: Optional[ActivityProfile] = None,
        now: Optional[datetime] = None,
    ) -> Reminder:
        """Create a reminder from a plain field set.

        Without a ``scheduled_time`` the time suggester picks one, projected
        onto today or, if that slot has passed, tomorrow.
        """

        now = self._now(now)
        try:
            request = ReminderCreate.model_validate(dict(fields))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid reminder: {_describe_errors(e)}") from e

        _require_weekdays(request.frequency, request.days_of_week)

        ai_suggested_time = None
        if request.scheduled_time is None:
            anchor = await self._suggested_anchor(request.category, profile, now)
            ai_suggested_time = anchor
        else:
            anchor = self._localize(request.scheduled_time, now)

        reminder = Reminder(
            owner_id=request.owner_id,
            category=request.category,
            title=request.title,
            description=request.description or "",
            scheduled_time=anchor,
            frequency=request.frequency,
            days_of_week=request.days_of_week,
            priority=request.priority,
            ai_suggested_time=ai_suggested_time,
            metadata=request.metadata,
            next_reminder=compute_next(anchor, request.frequency, request.days_of_week, now),
            created_at=now,
            updated_at=now,
        )

        created = await self.store.create(reminder)
        logger.info(f"Created reminder {created.id}: {created.title} (next: {created.next_reminder})")
        return created

    async def _create_daily_suggested(
        self,
        *,
        owner_id: str,
        category: ReminderCategory,
        title: str,
        description: str,
        priority: Priority,
        metadata: ReminderMetadata,
        profile: Optional[ActivityProfile],
        now: datetime,
        related_report_id: Optional[str] = None,
        related_plan_id: Optional[str] = None,
    ) -> Reminder:
        anchor = await self._suggested_anchor(category, profile, now)
        reminder = Reminder(
            owner_id=owner_id,
            category=category,
            title=title,
            description=description,
            scheduled_time=anchor,
            frequency=Frequency.DAILY,
            priority=priority,
            ai_suggested_time=anchor,
            related_report_id=related_report_id,
            related_plan_id=related_plan_id,
            metadata=metadata,
            next_reminder=compute_next(anchor, Frequency.DAILY, [], now),
            created_at=now,
            updated_at=now,
        )
        return await self.store.create(reminder)

    def _require_sources(self) -> SourceRecords:
        if self.sources is None:
            raise ValidationError("Report and plan lookups are not configured")
        return self.sources

    async def create_from_report(
        self,
        report_id: str,
        owner_id: str,
        profile: Optional[ActivityProfile] = None,
        now: Optional[datetime] = None,
    ) -> List[Reminder]:
        """One daily medicine reminder per medicine, for at most five medicines."""

        if not report_id or not owner_id:
            raise ValidationError("report_id and user_id are required")

        now = self._now(now)
        report = await self._require_sources().get_health_report(report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found")

        reminders = []
        for medicine in report.medicines[:MAX_REPORT_MEDICINES]:
            reminders.append(await self._create_daily_suggested(
                owner_id=owner_id,
                category=ReminderCategory.MEDICINE,
                title=f"Take {medicine}",
                description=REPORT_REMINDER_DESCRIPTION,
                priority=Priority.HIGH,
                metadata=ReminderMetadata(medicine_name=medicine),
                profile=profile,
                now=now,
                related_report_id=report.id,
            ))

        logger.info(f"Created {len(reminders)} medicine reminders from report {report_id}")
        return reminders

    async def create_from_plan(
        self,
        plan_id: str,
        owner_id: str,
        profile: Optional[ActivityProfile] = None,
        now: Optional[datetime] = None,
    ) -> List[Reminder]:
        """An exercise and a yoga reminder from the plan's first day, when present."""

        if not plan_id or not owner_id:
            raise ValidationError("plan_id and user_id are required")

        now = self._now(now)
        plan = await self._require_sources().get_weekly_plan(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")

        reminders: List[Reminder] = []
        if not plan.days:
            return reminders

        first_day = plan.days[0]
        for category, items, label in (
            (ReminderCategory.EXERCISE, first_day.exercises, "Exercise"),
            (ReminderCategory.YOGA, first_day.yoga, "Yoga"),
        ):
            if not items:
                continue
            reminders.append(await self._create_daily_suggested(
                owner_id=owner_id,
                category=category,
                title=f"{label}: {items[0]}",
                description=", ".join(items[:MAX_PLAN_ITEMS_IN_DESCRIPTION]),
                priority=Priority.MEDIUM,
                metadata=ReminderMetadata(exercise_name=items[0]),
                profile=profile,
                now=now,
                related_plan_id=plan.id,
            ))

        logger.info(f"Created {len(reminders)} exercise/yoga reminders from plan {plan_id}")
        return reminders

    async def update(
        self,
        reminder_id: str,
        fields: Mapping[str, Any],
        now: Optional[datetime] = None,
    ) -> Reminder:
        """Apply a partial patch, rescheduling when schedule fields change."""

        now = self._now(now)
        try:
            request = ReminderUpdate.model_validate(dict(fields))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid reminder update: {_describe_errors(e)}") from e

        patch = request.model_dump(exclude_unset=True)
        for key in ("category", "title", "frequency", "priority", "is_active", "scheduled_time", "days_of_week"):
            if key in patch and patch[key] is None:
                raise ValidationError(f"{key} cannot be null")

        current = await self._get(reminder_id)

        if "scheduled_time" in patch:
            patch["scheduled_time"] = self._localize(patch["scheduled_time"], now)
        if "metadata" in patch and patch["metadata"] is None:
            patch["metadata"] = {}
        if "description" in patch and patch["description"] is None:
            patch["description"] = ""

        if SCHEDULE_FIELDS & patch.keys():
            anchor = patch.get("scheduled_time", current.scheduled_time)
            frequency = Frequency(patch.get("frequency", current.frequency))
            days = patch.get("days_of_week", current.days_of_week)
            _require_weekdays(frequency, days)
            patch["next_reminder"] = compute_next(anchor, frequency, days, now)

        patch["updated_at"] = now
        updated = await self.store.update_by_id(reminder_id, patch)
        if updated is None:
            raise NotFoundError(f"Reminder {reminder_id} not found")

        logger.info(f"Updated reminder {reminder_id}: {sorted(k for k in patch if k != 'updated_at')}")
        return updated

    async def complete(self, reminder_id: str, now: Optional[datetime] = None) -> Reminder:
        """Acknowledge the current cycle.

        Recurring reminders get their next cycle scheduled from the original
        anchor right away; one-shot reminders are retired.
        """

        now = self._now(now)
        reminder = await self._get(reminder_id)

        patch: Dict[str, Any] = {"is_completed": True, "completed_at": now, "updated_at": now}
        if reminder.frequency is Frequency.ONCE:
            patch["is_active"] = False
        else:
            patch["next_reminder"] = compute_next(
                reminder.scheduled_time, reminder.frequency, reminder.days_of_week, now
            )

        updated = await self.store.update_by_id(reminder_id, patch)
        if updated is None:
            raise NotFoundError(f"Reminder {reminder_id} not found")

        logger.info(f"Completed reminder {reminder_id} (next: {updated.next_reminder})")
        return updated

    async def delete(self, reminder_id: str) -> None:
        if not await self.store.delete_by_id(reminder_id):
            raise NotFoundError(f"Reminder {reminder_id} not found")
        logger.info(f"Deleted reminder {reminder_id}")

    async def list_for_owner(
        self,
        owner_id: str,
        is_active: Optional[bool] = None,
        category: Optional[ReminderCategory] = None,
    ) -> List[Reminder]:
        """Owner's reminders, soonest first, higher priority first on ties."""

        reminders = await self.store.find_for_owner(owner_id, is_active=is_active, category=category)
        return sorted(
            reminders,
            key=lambda r: (
                r.next_reminder is None,
                r.next_reminder.timestamp() if r.next_reminder else 0.0,
                PRIORITY_RANK[r.priority],
            ),
        )

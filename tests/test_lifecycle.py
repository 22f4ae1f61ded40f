from datetime import datetime

import pytest

from health_server.errors import NotFoundError, ValidationError
from health_server.services.reminders.lifecycle import ReminderLifecycleManager
from health_server.services.reminders.models import (
    ActivityProfile,
    Frequency,
    HealthReport,
    PlanDay,
    Priority,
    ReminderCategory,
    WeeklyPlan,
)
from health_server.services.reminders.suggester import TimeSuggester

from conftest import ScriptedGenerator, at, make_reminder


@pytest.mark.asyncio
async def test_create_with_explicit_time(manager, store):
    reminder = await manager.create({
        "owner_id": "user-1",
        "category": "medicine",
        "title": "Take vitamin D",
        "scheduled_time": "2024-01-01T09:00:00+00:00",
        "frequency": "daily",
    })

    assert reminder.id in store.reminders
    assert reminder.next_reminder == at(2024, 1, 6, 9)
    assert reminder.ai_suggested_time is None
    assert reminder.is_active is True
    assert reminder.is_completed is False
    assert reminder.priority is Priority.MEDIUM
    assert reminder.created_at == at(2024, 1, 5, 10)


@pytest.mark.asyncio
async def test_create_localizes_naive_time_to_clock(manager):
    reminder = await manager.create({
        "owner_id": "user-1",
        "category": "exercise",
        "title": "Morning run",
        "scheduled_time": "2024-01-06T06:15:00",
        "frequency": "once",
    })

    assert reminder.scheduled_time == at(2024, 1, 6, 6, 15)
    assert reminder.next_reminder == at(2024, 1, 6, 6, 15)


@pytest.mark.asyncio
async def test_create_without_time_uses_suggestion(manager, generator):
    reminder = await manager.create({
        "owner_id": "user-1",
        "category": "yoga",
        "title": "Sun salutation",
    })

    # 08:30 has already passed at 10:00, so the slot lands tomorrow
    assert reminder.scheduled_time == at(2024, 1, 6, 8, 30)
    assert reminder.ai_suggested_time == at(2024, 1, 6, 8, 30)
    assert reminder.next_reminder == at(2024, 1, 6, 8, 30)
    assert len(generator.prompts) == 1
    assert "yoga" in generator.prompts[0]


@pytest.mark.asyncio
async def test_blank_time_is_treated_as_missing(manager):
    reminder = await manager.create({
        "owner_id": "user-1",
        "category": "medicine",
        "title": "Take iron",
        "scheduled_time": "  ",
    })
    assert reminder.ai_suggested_time is not None


@pytest.mark.asyncio
async def test_create_falls_back_when_generator_stalls(store, clock, profile):
    manager = ReminderLifecycleManager(
        store=store,
        suggester=TimeSuggester(ScriptedGenerator(delay=1.0), timeout_seconds=0.05),
        clock=clock,
        default_profile=profile,
    )

    reminder = await manager.create({"owner_id": "user-1", "category": "medicine", "title": "Take zinc"})

    assert reminder.scheduled_time == at(2024, 1, 6, 9)


@pytest.mark.asyncio
async def test_create_weekly_sorts_and_dedupes_days(manager):
    reminder = await manager.create({
        "owner_id": "user-1",
        "category": "yoga",
        "title": "Evening flow",
        "scheduled_time": "2024-01-01T18:00:00+00:00",
        "frequency": "weekly",
        "days_of_week": [5, 1, 5, 3],
    })

    assert reminder.days_of_week == [1, 3, 5]
    assert reminder.next_reminder == at(2024, 1, 5, 18)


@pytest.mark.parametrize("fields", [
    {"category": "medicine", "title": "Take aspirin"},
    {"owner_id": "user-1", "category": "medicine", "title": "  "},
    {"owner_id": "user-1", "category": "surgery", "title": "Op"},
    {"owner_id": "user-1", "category": "medicine", "title": "x", "frequency": "hourly"},
    {"owner_id": "user-1", "category": "medicine", "title": "x", "days_of_week": [7]},
    {"owner_id": "user-1", "category": "medicine", "title": "x", "scheduled_time": "tomorrow-ish"},
    {"owner_id": "user-1", "category": "medicine", "title": "x", "frequency": "weekly"},
])
@pytest.mark.asyncio
async def test_create_rejects_invalid_input(manager, store, fields):
    with pytest.raises(ValidationError):
        await manager.create(fields)
    assert store.reminders == {}


@pytest.mark.asyncio
async def test_create_from_report_caps_at_five(manager, store):
    store.reports["r1"] = HealthReport(id="r1", medicines=["a", "b", "c", "d", "e", "f", "g"])

    reminders = await manager.create_from_report("r1", "user-1")

    assert [r.title for r in reminders] == ["Take a", "Take b", "Take c", "Take d", "Take e"]
    for reminder in reminders:
        assert reminder.category is ReminderCategory.MEDICINE
        assert reminder.priority is Priority.HIGH
        assert reminder.frequency is Frequency.DAILY
        assert reminder.related_report_id == "r1"
        assert reminder.description == "Medicine reminder from your health report"
        assert reminder.next_reminder is not None
    assert reminders[0].metadata.medicine_name == "a"
    assert len(store.reminders) == 5


@pytest.mark.asyncio
async def test_create_from_report_without_medicines(manager, store):
    store.reports["r2"] = HealthReport(id="r2", medicines=None)
    assert await manager.create_from_report("r2", "user-1") == []


@pytest.mark.asyncio
async def test_create_from_missing_report(manager):
    with pytest.raises(NotFoundError):
        await manager.create_from_report("nope", "user-1")


@pytest.mark.asyncio
async def test_create_from_report_requires_ids(manager):
    with pytest.raises(ValidationError):
        await manager.create_from_report("", "user-1")


@pytest.mark.asyncio
async def test_create_from_plan_uses_first_day(manager, store):
    store.plans["p1"] = WeeklyPlan(id="p1", days=[
        PlanDay(exercises=["Squats", "Lunges", "Plank", "Burpees"], yoga=["Tree pose"]),
        PlanDay(exercises=["Rowing"], yoga=["Cobra"]),
    ])

    reminders = await manager.create_from_plan("p1", "user-1")

    assert [r.title for r in reminders] == ["Exercise: Squats", "Yoga: Tree pose"]
    assert reminders[0].description == "Squats, Lunges, Plank"
    assert reminders[0].metadata.exercise_name == "Squats"
    assert reminders[1].category is ReminderCategory.YOGA
    assert all(r.priority is Priority.MEDIUM for r in reminders)
    assert all(r.related_plan_id == "p1" for r in reminders)


@pytest.mark.asyncio
async def test_create_from_plan_skips_empty_lists(manager, store):
    store.plans["p2"] = WeeklyPlan(id="p2", days=[PlanDay(exercises=[], yoga=["Child pose"])])
    store.plans["p3"] = WeeklyPlan(id="p3", days=[])

    assert [r.title for r in await manager.create_from_plan("p2", "user-1")] == ["Yoga: Child pose"]
    assert await manager.create_from_plan("p3", "user-1") == []


@pytest.mark.asyncio
async def test_create_from_plan_uses_request_profile(manager, store, generator):
    store.plans["p4"] = WeeklyPlan(id="p4", days=[PlanDay(exercises=["Swim"])])
    profile = ActivityProfile(sleep_time="01:00", wake_time="09:30", meal_times="11:00, 20:00")

    await manager.create_from_plan("p4", "user-1", profile=profile)

    assert "09:30" in generator.prompts[0]


@pytest.mark.asyncio
async def test_update_recomputes_next_on_schedule_change(manager, store):
    existing = store.add(make_reminder(next_reminder=at(2024, 1, 6, 9)))

    updated = await manager.update(existing.id, {"scheduled_time": "2024-01-01T18:30:00+00:00"})

    assert updated.next_reminder == at(2024, 1, 5, 18, 30)
    assert updated.updated_at == at(2024, 1, 5, 10)


@pytest.mark.asyncio
async def test_update_to_weekly_requires_days(manager, store):
    existing = store.add(make_reminder())

    with pytest.raises(ValidationError):
        await manager.update(existing.id, {"frequency": "weekly"})

    updated = await manager.update(existing.id, {"frequency": "weekly", "days_of_week": [0]})
    assert updated.next_reminder == at(2024, 1, 7, 9)


@pytest.mark.asyncio
async def test_update_of_other_fields_keeps_schedule(manager, store):
    existing = store.add(make_reminder(next_reminder=at(2024, 1, 6, 9)))

    updated = await manager.update(existing.id, {"title": "Take aspirin with water", "description": None})

    assert updated.title == "Take aspirin with water"
    assert updated.description == ""
    assert updated.next_reminder == at(2024, 1, 6, 9)
    _, patch = store.updates[-1]
    assert "next_reminder" not in patch


@pytest.mark.asyncio
async def test_update_rejects_unknown_and_null_fields(manager, store):
    existing = store.add(make_reminder())

    with pytest.raises(ValidationError):
        await manager.update(existing.id, {"owner_id": "someone-else"})
    with pytest.raises(ValidationError):
        await manager.update(existing.id, {"title": None})


@pytest.mark.asyncio
async def test_update_missing_reminder(manager):
    with pytest.raises(NotFoundError):
        await manager.update("missing", {"title": "x"})


@pytest.mark.asyncio
async def test_complete_once_retires_reminder(manager, store):
    existing = store.add(make_reminder(frequency=Frequency.ONCE, next_reminder=at(2024, 1, 6, 9)))

    completed = await manager.complete(existing.id)

    assert completed.is_completed is True
    assert completed.completed_at == at(2024, 1, 5, 10)
    assert completed.is_active is False


@pytest.mark.asyncio
async def test_complete_recurring_schedules_next_cycle(manager, store):
    existing = store.add(make_reminder(next_reminder=at(2024, 1, 5, 9)))

    completed = await manager.complete(existing.id)

    assert completed.is_completed is True
    assert completed.is_active is True
    assert completed.next_reminder == at(2024, 1, 6, 9)


@pytest.mark.asyncio
async def test_complete_monthly_with_naive_stored_anchor(manager, store):
    existing = store.add(make_reminder(frequency=Frequency.MONTHLY, scheduled_time=datetime(2024, 1, 1, 9)))

    completed = await manager.complete(existing.id)

    assert completed.next_reminder == at(2024, 2, 1, 9)


@pytest.mark.asyncio
async def test_complete_missing_reminder(manager):
    with pytest.raises(NotFoundError):
        await manager.complete("missing")


@pytest.mark.asyncio
async def test_delete(manager, store):
    existing = store.add(make_reminder())

    await manager.delete(existing.id)

    assert existing.id not in store.reminders
    with pytest.raises(NotFoundError):
        await manager.delete(existing.id)


@pytest.mark.asyncio
async def test_list_orders_by_next_then_priority(manager, store):
    late = store.add(make_reminder(title="late", next_reminder=at(2024, 1, 7, 9)))
    low = store.add(make_reminder(title="low", priority=Priority.LOW, next_reminder=at(2024, 1, 6, 9)))
    high = store.add(make_reminder(title="high", priority=Priority.HIGH, next_reminder=at(2024, 1, 6, 9)))
    retired = store.add(make_reminder(title="retired", is_active=False, next_reminder=None))
    store.add(make_reminder(owner_id="user-2", title="not mine"))

    listed = await manager.list_for_owner("user-1")
    assert [r.id for r in listed] == [high.id, low.id, late.id, retired.id]

    active = await manager.list_for_owner("user-1", is_active=True)
    assert retired.id not in [r.id for r in active]

    exercise = await manager.list_for_owner("user-1", category=ReminderCategory.EXERCISE)
    assert exercise == []

"""Wiring of the reminder services to their production collaborators."""

from datetime import datetime
from functools import lru_cache
from typing import Callable
from zoneinfo import ZoneInfo

from .config import get_settings
from .openrouter_client import OpenRouterTextGenerator
from .services.notifications.email import EmailNotificationDispatcher
from .services.reminders.lifecycle import ReminderLifecycleManager
from .services.reminders.models import ActivityProfile
from .services.reminders.repository import SupabaseReminderStore
from .services.reminders.scheduler import ReminderSweepScheduler
from .services.reminders.suggester import TimeSuggester
from .services.supabase_client import get_supabase_client


def get_clock() -> Callable[[], datetime]:
    """Wall clock in the configured reminder timezone."""
    zone = ZoneInfo(get_settings().reminder_timezone)
    return lambda: datetime.now(zone)


def default_activity_profile() -> ActivityProfile:
    settings = get_settings()
    return ActivityProfile(
        sleep_time=settings.default_sleep_time,
        wake_time=settings.default_wake_time,
        meal_times=settings.default_meal_times,
        activity_level=settings.default_activity_level,
    )


@lru_cache(maxsize=1)
def get_reminder_store() -> SupabaseReminderStore:
    settings = get_settings()
    return SupabaseReminderStore(get_supabase_client(), timeout_seconds=settings.persistence_timeout_seconds)


@lru_cache(maxsize=1)
def get_lifecycle_manager() -> ReminderLifecycleManager:
    settings = get_settings()
    store = get_reminder_store()
    return ReminderLifecycleManager(
        store=store,
        suggester=TimeSuggester(OpenRouterTextGenerator(), timeout_seconds=settings.suggestion_timeout_seconds),
        clock=get_clock(),
        sources=store,
        default_profile=default_activity_profile(),
    )


def build_sweep_scheduler() -> ReminderSweepScheduler:
    settings = get_settings()
    store = get_reminder_store()
    return ReminderSweepScheduler(
        store=store,
        users=store,
        dispatcher=EmailNotificationDispatcher(settings),
        clock=get_clock(),
        interval_seconds=settings.sweep_interval_seconds,
        window_seconds=settings.sweep_window_seconds,
        deadline_seconds=settings.effective_sweep_deadline,
        item_timeout_seconds=settings.sweep_item_timeout_seconds,
    )

"""Optimal reminder time suggestions from a text-generation model."""

import asyncio
import re
from typing import Optional, Protocol, Union

from ...logging_config import get_logger
from .models import ActivityProfile, ReminderCategory, TimeOfDay

logger = get_logger(__name__)

_TIME_PATTERN = re.compile(r"(?<!\d)(\d{1,2})\s*:\s*(\d{1,2})(?!\d)")

DEFAULT_TIMES = {
    ReminderCategory.MEDICINE: TimeOfDay(hour=9, minute=0),
    ReminderCategory.EXERCISE: TimeOfDay(hour=7, minute=0),
    ReminderCategory.YOGA: TimeOfDay(hour=7, minute=0),
}
FALLBACK_TIME = TimeOfDay(hour=10, minute=0)

_CATEGORY_LABELS = {
    ReminderCategory.MEDICINE: "medicine",
    ReminderCategory.EXERCISE: "exercise",
    ReminderCategory.YOGA: "yoga",
    ReminderCategory.DOCTOR_VISIT: "doctor visit",
    ReminderCategory.OTHER: "general health",
}


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


def default_time(category: Union[ReminderCategory, str]) -> TimeOfDay:
    """Fixed time used whenever no usable suggestion is available."""
    try:
        category = ReminderCategory(category)
    except ValueError:
        return FALLBACK_TIME
    return DEFAULT_TIMES.get(category, FALLBACK_TIME)


def build_prompt(category: ReminderCategory, profile: ActivityProfile) -> str:
    label = _CATEGORY_LABELS.get(category, category.value)
    return f"""You are a health assistant. Suggest the optimal time for a {label} reminder based on the following information:

User Activity Pattern:
- Sleep schedule: {profile.sleep_time}
- Wake time: {profile.wake_time}
- Meal times: {profile.meal_times}
- Work schedule: {profile.work_schedule or 'Unknown'}
- Activity level: {profile.activity_level or 'Moderate'}

Reminder Type: {label}

Consider:
- For medicine: Should be taken with meals or at consistent intervals
- For exercise/yoga: Best times based on energy levels (morning for some, evening for others)
- Avoid times during sleep
- Consider meal times for medicine
- Respect work schedule

Respond with ONLY a time in 24-hour format (HH:MM), nothing else. Example: "09:00" or "14:30"
"""


def parse_time_reply(text: str) -> Optional[TimeOfDay]:
    """Pull the first HH:MM out of a model reply; None when absent or out of range."""
    if not text:
        return None
    match = _TIME_PATTERN.search(text)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return TimeOfDay(hour=hour, minute=minute)


class TimeSuggester:
    """Asks a text generator for a reminder time, falling back to fixed defaults."""

    def __init__(self, generator: Optional[TextGenerator], timeout_seconds: float = 10.0):
        self.generator = generator
        self.timeout_seconds = timeout_seconds

    async def suggest_time(
        self,
        category: Union[ReminderCategory, str],
        profile: Optional[ActivityProfile],
    ) -> TimeOfDay:
        """Never raises; always returns a usable time of day."""

        fallback = default_time(category)

        try:
            category = ReminderCategory(category)
        except ValueError:
            logger.warning(f"Unknown reminder category {category!r}, using default time")
            return fallback

        if self.generator is None:
            return fallback

        if profile is None or not profile.is_complete():
            logger.info(f"Activity profile incomplete, using default {category.value} time")
            return fallback

        try:
            reply = await asyncio.wait_for(
                self.generator.generate(build_prompt(category, profile)),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Time suggestion for {category.value} timed out after {self.timeout_seconds}s")
            return fallback
        except Exception as e:
            logger.warning(f"Time suggestion for {category.value} failed: {e}")
            return fallback

        suggested = parse_time_reply(reply)
        if suggested is None:
            logger.warning(f"Unusable time suggestion {reply!r} for {category.value}")
            return fallback

        logger.info(f"Suggested {suggested.hour:02d}:{suggested.minute:02d} for {category.value} reminder")
        return suggested

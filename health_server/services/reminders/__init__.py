"""Health reminder scheduling services."""

from .models import ActivityProfile, Frequency, Priority, Reminder, ReminderCategory
from .recurrence import compute_next

__all__ = [
    "ActivityProfile",
    "Frequency",
    "Priority",
    "Reminder",
    "ReminderCategory",
    "compute_next",
]

"""Data models for health reminders and the records they are derived from."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReminderCategory(str, Enum):
    """What a reminder is about."""
    MEDICINE = "medicine"
    EXERCISE = "exercise"
    YOGA = "yoga"
    DOCTOR_VISIT = "doctor_visit"
    OTHER = "other"


class Frequency(str, Enum):
    """How often a reminder repeats."""
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

# Columns whose change requires next_reminder to be recomputed
SCHEDULE_FIELDS = frozenset({"scheduled_time", "frequency", "days_of_week"})


def _normalize_days(value: Optional[List[int]]) -> List[int]:
    if value is None:
        return []
    days = set()
    for day in value:
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            raise ValueError(f"days_of_week entries must be integers 0-6 (Sunday=0), got {day!r}")
        days.add(day)
    return sorted(days)


class ReminderMetadata(BaseModel):
    """Display-only details carried alongside a reminder."""
    medicine_name: Optional[str] = None
    exercise_name: Optional[str] = None
    doctor_name: Optional[str] = None
    appointment_date: Optional[datetime] = None


class Reminder(BaseModel):
    """A stored reminder record."""
    id: Optional[str] = None
    owner_id: str
    category: ReminderCategory
    title: str
    description: str = ""
    scheduled_time: datetime
    frequency: Frequency = Frequency.DAILY
    days_of_week: List[int] = Field(default_factory=list)
    is_active: bool = True
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    priority: Priority = Priority.MEDIUM
    ai_suggested_time: Optional[datetime] = None
    last_reminded: Optional[datetime] = None
    next_reminder: Optional[datetime] = None
    related_report_id: Optional[str] = None
    related_plan_id: Optional[str] = None
    metadata: ReminderMetadata = Field(default_factory=ReminderMetadata)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _check_days(cls, value):
        return _normalize_days(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _empty_metadata(cls, value):
        return value or {}

    def to_row(self) -> Dict[str, Any]:
        """Serialize to a JSON-ready row; the id is left to the store."""
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Reminder":
        data = dict(row)
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        return cls.model_validate(data)


class ReminderCreate(BaseModel):
    """Fields accepted when creating a reminder directly."""
    model_config = ConfigDict(extra="ignore")

    owner_id: str = Field(min_length=1)
    category: ReminderCategory
    title: str = Field(min_length=1)
    description: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    frequency: Frequency = Frequency.DAILY
    days_of_week: List[int] = Field(default_factory=list)
    priority: Priority = Priority.MEDIUM
    metadata: ReminderMetadata = Field(default_factory=ReminderMetadata)

    @field_validator("title", "owner_id", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _check_days(cls, value):
        return _normalize_days(value)

    @field_validator("scheduled_time", mode="before")
    @classmethod
    def _blank_time(cls, value):
        # An empty string means "no time given", which triggers a suggestion
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ReminderUpdate(BaseModel):
    """Partial patch applied to an existing reminder."""
    model_config = ConfigDict(extra="forbid")

    category: Optional[ReminderCategory] = None
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    frequency: Optional[Frequency] = None
    days_of_week: Optional[List[int]] = None
    priority: Optional[Priority] = None
    is_active: Optional[bool] = None
    metadata: Optional[ReminderMetadata] = None

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _check_days(cls, value):
        if value is None:
            return None
        return _normalize_days(value)


class ActivityProfile(BaseModel):
    """Rough daily routine used to pick a reminder time."""
    sleep_time: Optional[str] = None
    wake_time: Optional[str] = None
    meal_times: Optional[str] = None
    work_schedule: Optional[str] = None
    activity_level: str = "Moderate"

    def is_complete(self) -> bool:
        return all(
            value and value.strip()
            for value in (self.sleep_time, self.wake_time, self.meal_times)
        )


class TimeOfDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)


class HealthReport(BaseModel):
    """The slice of a saved health report that reminders are built from."""
    id: str
    user_id: Optional[str] = None
    medicines: List[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value):
        return str(value) if value is not None else value

    @field_validator("medicines", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []


class PlanDay(BaseModel):
    exercises: List[str] = Field(default_factory=list)
    yoga: List[str] = Field(default_factory=list)

    @field_validator("exercises", "yoga", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []


class WeeklyPlan(BaseModel):
    """The slice of a saved weekly plan that reminders are built from."""
    id: str
    user_id: Optional[str] = None
    days: List[PlanDay] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value):
        return str(value) if value is not None else value

    @field_validator("days", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []


class UserContact(BaseModel):
    """Owner details needed for delivery."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value):
        return str(value) if value is not None else value


class DeliveryResult(BaseModel):
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None

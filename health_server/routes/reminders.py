"""Reminder routes."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..dependencies import get_lifecycle_manager
from ..errors import ValidationError
from ..logging_config import get_logger
from ..services.reminders.lifecycle import ReminderLifecycleManager
from ..services.reminders.models import ActivityProfile, Reminder, ReminderCategory
from ..utils.responses import ok_response

logger = get_logger(__name__)

router = APIRouter(prefix="/reminders", tags=["reminders"])


class FromReportRequest(BaseModel):
    report_id: str
    user_id: str
    activity_profile: Optional[ActivityProfile] = None


class FromPlanRequest(BaseModel):
    plan_id: str
    user_id: str
    activity_profile: Optional[ActivityProfile] = None


def _dump(reminders: List[Reminder]) -> List[Dict[str, Any]]:
    return [reminder.model_dump(mode="json") for reminder in reminders]


def _profile(raw: Any) -> Optional[ActivityProfile]:
    if raw is None:
        return None
    try:
        return ActivityProfile.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid activity_profile: {e.error_count()} error(s)") from e


@router.post("")
async def create_reminder(
    payload: Dict[str, Any] = Body(...),
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    """Create a custom reminder."""

    fields = dict(payload)
    profile = _profile(fields.pop("activity_profile", None))
    if "owner_id" not in fields and "user_id" in fields:
        fields["owner_id"] = fields.pop("user_id")

    reminder = await manager.create(fields, profile=profile)
    return ok_response("Reminder created successfully", reminder.model_dump(mode="json"), status.HTTP_201_CREATED)


@router.post("/from-report")
async def create_reminders_from_report(
    request: FromReportRequest,
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    """Create medicine reminders from a saved health report."""

    reminders = await manager.create_from_report(request.report_id, request.user_id, profile=request.activity_profile)
    return ok_response(f"Created {len(reminders)} medicine reminders", _dump(reminders), status.HTTP_201_CREATED)


@router.post("/from-plan")
async def create_reminders_from_plan(
    request: FromPlanRequest,
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    """Create exercise and yoga reminders from a saved weekly plan."""

    reminders = await manager.create_from_plan(request.plan_id, request.user_id, profile=request.activity_profile)
    return ok_response(f"Created {len(reminders)} exercise/yoga reminders", _dump(reminders), status.HTTP_201_CREATED)


@router.get("/user/{user_id}")
async def list_user_reminders(
    user_id: str,
    is_active: Optional[bool] = None,
    category: Optional[ReminderCategory] = None,
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    """List a user's reminders, soonest first."""

    reminders = await manager.list_for_owner(user_id, is_active=is_active, category=category)
    return ok_response(f"Found {len(reminders)} reminders", _dump(reminders), count=len(reminders))


@router.put("/{reminder_id}")
async def update_reminder(
    reminder_id: str,
    payload: Dict[str, Any] = Body(...),
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    reminder = await manager.update(reminder_id, payload)
    return ok_response("Reminder updated successfully", reminder.model_dump(mode="json"))


@router.delete("/{reminder_id}")
async def delete_reminder(
    reminder_id: str,
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    await manager.delete(reminder_id)
    return ok_response("Reminder deleted successfully")


@router.post("/{reminder_id}/complete")
async def complete_reminder(
    reminder_id: str,
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    """Mark the current cycle of a reminder as done."""

    reminder = await manager.complete(reminder_id)
    return ok_response("Reminder marked as completed", reminder.model_dump(mode="json"))


__all__ = ["router"]

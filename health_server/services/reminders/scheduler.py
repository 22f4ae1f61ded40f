"""Periodic sweep that delivers due reminders and rolls their schedules forward."""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from ...logging_config import get_logger
from ..notifications.email import NotificationDispatcher
from .models import DeliveryResult, Frequency, Reminder
from .recurrence import compute_next
from .repository import ReminderStore, UserDirectory

logger = get_logger(__name__)


class SweepItemResult(BaseModel):
    """Outcome of processing one due reminder."""
    reminder_id: str
    delivery: str = "pending"  # sent, failed, no_user, no_address, timeout
    delivered: bool = False
    persisted: bool = False
    error: Optional[str] = None


class SweepReport(BaseModel):
    """Settled results of one sweep tick."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    skipped: Optional[str] = None  # store_unavailable, tick_in_progress, query_failed
    selected: int = 0
    deferred: int = 0
    rearmed: int = 0
    retired: int = 0
    results: List[SweepItemResult] = Field(default_factory=list)

    @computed_field
    @property
    def delivered(self) -> int:
        return sum(1 for r in self.results if r.delivered)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.error)


def advance_patch(reminder: Reminder, now: datetime) -> Dict[str, Any]:
    """Fields to write after a reminder has been visited by the sweep."""
    patch: Dict[str, Any] = {"last_reminded": now, "updated_at": now}
    if reminder.frequency is Frequency.ONCE:
        patch["is_active"] = False
        return patch

    patch["next_reminder"] = compute_next(
        reminder.scheduled_time, reminder.frequency, reminder.days_of_week, now
    )
    if reminder.is_completed:
        # The new cycle starts unacknowledged
        patch["is_completed"] = False
        patch["completed_at"] = None
    return patch


class ReminderSweepScheduler:
    """Runs the reminder sweep on a fixed cadence.

    At most one tick runs at a time; a tick that finds another in progress is
    skipped rather than queued.
    """

    def __init__(
        self,
        store: ReminderStore,
        users: UserDirectory,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime],
        interval_seconds: int = 60,
        window_seconds: int = 60,
        deadline_seconds: float = 45,
        item_timeout_seconds: float = 35,
    ):
        self.store = store
        self.users = users
        self.dispatcher = dispatcher
        self.clock = clock
        self.check_interval = interval_seconds
        self.window = timedelta(seconds=window_seconds)
        self.deadline_seconds = deadline_seconds
        self.item_timeout_seconds = item_timeout_seconds
        self.last_report: Optional[SweepReport] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._tick_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the sweep loop."""

        if self._running:
            logger.warning("Reminder sweep already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._scheduler_loop())
        logger.info(f"Reminder sweep started (checking every {self.check_interval} seconds)")

    async def stop(self) -> None:
        """Stop the sweep loop."""

        if not self._running:
            return

        self._running = False

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        self._task = None
        logger.info("Reminder sweep stopped")

    async def _scheduler_loop(self) -> None:
        loop = asyncio.get_running_loop()

        while self._running:
            started = loop.time()
            try:
                await self.run_tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Error in reminder sweep: {e}")

            await asyncio.sleep(max(0.0, self.check_interval - (loop.time() - started)))

    async def run_tick(self, now: Optional[datetime] = None) -> SweepReport:
        """Run one sweep and return its settled results."""

        now = now if now is not None else self.clock()
        report = SweepReport(started_at=now)

        if self._tick_lock.locked():
            logger.warning("Previous reminder sweep still running, skipping tick")
            report.skipped = "tick_in_progress"
            return report

        async with self._tick_lock:
            if not await self.store.is_available():
                logger.warning("Database not connected, skipping reminder check")
                report.skipped = "store_unavailable"
                self.last_report = report
                return report

            await self._sweep(report, now)

        report.finished_at = self.clock()
        self.last_report = report

        if report.selected or report.rearmed or report.retired:
            logger.info(
                f"Processed {report.selected} reminder(s): {report.delivered} delivered, "
                f"{report.failed} with errors, {report.deferred} deferred, "
                f"{report.rearmed} re-armed, {report.retired} retired"
            )
        return report

    async def _sweep(self, report: SweepReport, now: datetime) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.deadline_seconds

        try:
            due = await self.store.find_due(now, now + self.window)
        except Exception as e:
            logger.error(f"Failed to get due reminders: {e}")
            report.skipped = "query_failed"
            return

        report.selected = len(due)

        for index, reminder in enumerate(due):
            if loop.time() >= deadline:
                report.deferred = len(due) - index
                logger.warning(f"Sweep deadline reached, deferring {report.deferred} reminder(s)")
                return
            report.results.append(await self._process(reminder, now))

        if loop.time() < deadline:
            await self._rearm_stale(report, now)

    async def _process(self, reminder: Reminder, now: datetime) -> SweepItemResult:
        result = SweepItemResult(reminder_id=str(reminder.id))
        try:
            await asyncio.wait_for(self._deliver(reminder, result), timeout=self.item_timeout_seconds)
        except asyncio.TimeoutError:
            result.delivered = False
            result.delivery = "timeout"
            result.error = f"delivery timed out after {self.item_timeout_seconds}s"
            logger.error(f"Reminder {reminder.id}: {result.error}")
        except Exception as e:
            result.delivery = "failed"
            result.error = f"delivery failed: {e}"
            logger.error(f"Reminder {reminder.id}: delivery failed: {e}")

        # Delivery outcome never blocks advancing the schedule; the store bounds this write
        try:
            await self.store.update_by_id(str(reminder.id), advance_patch(reminder, now))
            result.persisted = True
        except Exception as e:
            result.error = f"persist failed: {e}"
            logger.error(f"Reminder {reminder.id}: failed to advance schedule: {e}")
        return result

    async def _deliver(self, reminder: Reminder, result: SweepItemResult) -> None:
        try:
            user = await self.users.find_user(reminder.owner_id)
        except Exception as e:
            logger.error(f"Reminder {reminder.id}: user lookup failed: {e}")
            result.delivery = "no_user"
            result.error = f"user lookup failed: {e}"
            return

        if user is None:
            logger.warning(f"User not found for reminder {reminder.id}")
            result.delivery = "no_user"
            return

        if not user.email:
            logger.warning(
                f"User {user.id} has no email address, reminder logged only: "
                f"{reminder.title} ({reminder.category.value}) at {reminder.next_reminder}"
            )
            result.delivery = "no_address"
            return

        logger.info(f"Sending reminder {reminder.id} '{reminder.title}' to {user.email}")
        try:
            outcome = await self.dispatcher.deliver(user.email, user.name, reminder)
        except Exception as e:
            outcome = DeliveryResult(success=False, error=str(e))

        result.delivered = outcome.success
        result.delivery = "sent" if outcome.success else "failed"
        if not outcome.success:
            result.error = f"delivery failed: {outcome.error}"
            logger.warning(f"Reminder {reminder.id}: email notification failed: {outcome.error}")

    async def _rearm_stale(self, report: SweepReport, now: datetime) -> None:
        """Reschedule reminders whose slot passed without a visit.

        Recurring reminders move to their next slot. One-shot reminders have
        no next slot, so they are retired.
        """

        try:
            stale = await self.store.find_stale(now)
        except Exception as e:
            logger.error(f"Failed to get stale reminders: {e}")
            return

        for reminder in stale:
            try:
                if reminder.frequency is Frequency.ONCE:
                    await self.store.update_by_id(
                        str(reminder.id), {"is_active": False, "next_reminder": None, "updated_at": now}
                    )
                    report.retired += 1
                    logger.info(f"Retired missed one-time reminder {reminder.id}")
                    continue

                next_reminder = compute_next(
                    reminder.scheduled_time, reminder.frequency, reminder.days_of_week, now
                )
                await self.store.update_by_id(
                    str(reminder.id), {"next_reminder": next_reminder, "updated_at": now}
                )
                report.rearmed += 1
                logger.info(f"Re-armed missed reminder {reminder.id} for {next_reminder}")
            except Exception as e:
                logger.error(f"Failed to re-arm reminder {reminder.id}: {e}")

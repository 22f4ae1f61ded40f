"""Background services for reminder delivery."""

from typing import Optional

from ..config import get_settings
from ..dependencies import build_sweep_scheduler
from ..logging_config import get_logger
from .reminders.scheduler import ReminderSweepScheduler

logger = get_logger(__name__)


class BackgroundServiceManager:
    """Manages the background services of the health reminder server."""

    def __init__(self):
        self.settings = get_settings()
        self.reminder_sweep: Optional[ReminderSweepScheduler] = None
        self._running = False

    async def start_services(self) -> None:
        """Start all background services."""

        if self._running:
            logger.warning("Background services already running")
            return

        logger.info("Starting background services...")

        try:
            if self.settings.sweep_enabled:
                self.reminder_sweep = build_sweep_scheduler()
                await self.reminder_sweep.start()
            else:
                logger.info("Reminder sweep disabled, skipping")

            self._running = True
            logger.info("All background services started successfully")

        except Exception as e:
            logger.error(f"Failed to start background services: {e}")
            self._running = True
            await self.stop_services()

    async def stop_services(self) -> None:
        """Stop all background services."""

        if not self._running:
            return

        logger.info("Stopping background services...")

        try:
            if self.reminder_sweep:
                await self.reminder_sweep.stop()
                self.reminder_sweep = None

        except Exception as e:
            logger.error(f"Error stopping background services: {e}")

        self._running = False
        logger.info("Background services stopped")

    def is_running(self) -> bool:
        """Check if background services are running."""
        return self._running


_background_manager = BackgroundServiceManager()


def get_background_manager() -> BackgroundServiceManager:
    """Get the global background service manager."""
    return _background_manager

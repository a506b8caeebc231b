"""Background sweep of expired cache entries and store records."""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from fxconv.lib.config import CLEANUP_INTERVAL_MINUTES
from fxconv.services.currency_service import CurrencyService

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = "expired_record_cleanup"


class CleanupScheduler:
    """Periodically evicts expired data held by a CurrencyService."""

    def __init__(
        self,
        service: CurrencyService,
        interval_minutes: float = CLEANUP_INTERVAL_MINUTES,
    ) -> None:
        """
        Initialize cleanup scheduler.

        Args:
            service: Service whose cache and store are swept
            interval_minutes: Minutes between sweeps
        """
        self.service = service
        self.interval_minutes = interval_minutes
        self.scheduler = BackgroundScheduler()
        self.is_running = False
        self.last_run: Optional[datetime] = None

    def start(self) -> None:
        """Start the sweep daemon."""
        if self.is_running:
            logger.warning("Cleanup scheduler already running")
            return

        self.scheduler.add_job(
            self.run_cleanup,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=CLEANUP_JOB_ID,
            name="Expired Record Cleanup",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self.is_running = True
        logger.info(f"Cleanup scheduler started - every {self.interval_minutes} minutes")

    def stop(self) -> None:
        """Stop the sweep daemon."""
        if not self.is_running:
            return

        self.scheduler.shutdown(wait=True)
        self.is_running = False
        logger.info("Cleanup scheduler stopped")

    def run_cleanup(self) -> dict[str, int]:
        """
        Run one sweep.

        Failures are logged and reported as an empty result so the job stays
        scheduled.

        Returns:
            Eviction counts per component
        """
        try:
            removed = self.service.cleanup()
        except Exception as e:
            logger.error(f"Cleanup sweep failed: {e}", exc_info=True)
            return {}

        self.last_run = datetime.now()
        if any(removed.values()):
            logger.info(
                f"Cleanup removed {removed.get('cache', 0)} cache entries "
                f"and {removed.get('store', 0)} records"
            )
        return removed

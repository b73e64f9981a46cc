"""
Daily scheduler for the preference learning cycle
"""
import asyncio
import time
from datetime import datetime
from typing import Awaitable, Callable

import schedule

from src.utils.config import Settings
from src.utils.logger import logger


class LearningScheduler:
    """Runs the learning cycle once a day at ``SCHEDULER_TIME``.

    Runs never overlap: the job runs synchronously inside the scheduler loop.
    """

    def __init__(self, settings: Settings, cycle_func: Callable[[], Awaitable[object]]):
        """
        Initialize scheduler

        Args:
            settings: Application settings
            cycle_func: Async function running one learning cycle
        """
        self.settings = settings
        self.cycle_func = cycle_func

    def setup_schedule(self) -> None:
        """Register the daily job"""
        schedule.clear()
        schedule.every().day.at(self.settings.scheduler_time).do(self._run_async_job)
        logger.info(f"Scheduled: learning cycle daily at {self.settings.scheduler_time}")

    def _run_async_job(self) -> None:
        """Run the async cycle; a failed run is logged and retried next day."""
        logger.info(f"Scheduled learning cycle starting at {datetime.now()}")
        try:
            outcome = asyncio.run(self.cycle_func())
            logger.info(f"Scheduled learning cycle finished: {outcome}")
        except Exception as e:
            logger.error(f"Error in scheduled learning cycle: {e}")

    def run_forever(self) -> None:
        """Run the scheduler indefinitely"""
        logger.info("Starting scheduler loop...")
        try:
            while True:
                schedule.run_pending()
                time.sleep(60)
        except KeyboardInterrupt:
            logger.info("Scheduler stopped by user")

    def run_once_then_schedule(self) -> None:
        """Run immediately once, then start the schedule"""
        if not self.settings.scheduler_enabled:
            logger.info("Scheduler is disabled")
            return

        logger.info("Running initial learning cycle before starting scheduler...")
        self._run_async_job()

        self.setup_schedule()
        self.run_forever()

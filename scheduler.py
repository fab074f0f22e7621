import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from database import session_scope
from recurrence import RecurringEngine

logger = logging.getLogger(__name__)


class SchedulerManager:
    def __init__(self) -> None:
        settings = get_settings()
        self.enabled = settings.scheduler_enabled
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def run_job(self, source: str = "manual") -> int:
        logger.info(f"recurring_run: source={source}")
        with session_scope() as session:
            count = RecurringEngine(session).post_due()
        logger.info(f"recurring_run: source={source} occurrences_posted={count}")
        return count

    def start(self) -> None:
        if not self.enabled:
            logger.info("Scheduler disabled by configuration")
            return

        self.run_job("startup")

        self.scheduler.add_job(
            self.run_job,
            CronTrigger(hour=3, minute=15),
            args=["daily_03:15"],
            id="recurring_daily",
            replace_existing=True,
            misfire_grace_time=3600,
        )
        self.scheduler.add_job(
            self.run_job,
            IntervalTrigger(hours=1),
            args=["hourly_safety_net"],
            id="recurring_hourly_safety",
            replace_existing=True,
            misfire_grace_time=300,
        )

        self.scheduler.start()
        logger.info("Scheduler started with daily 03:15 and hourly safety net")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

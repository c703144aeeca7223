"""
Background jobs
===============
APScheduler jobs that keep notifications flowing:
- trigger dispatch every DISPATCH_INTERVAL_SECONDS
- due reminders at the top of every hour
- weekly retention sweep (Sunday 03:00)
"""

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..core.config import Settings, get_settings
from ..container import build_services
from ..database import session_scope
from .dispatch_pool import DispatchPool

logger = logging.getLogger(__name__)


class NotificationScheduler:
    """Manages background jobs for notification delivery and housekeeping."""

    def __init__(self, settings: Optional[Settings] = None, bind=None):
        self.settings = settings or get_settings()
        self.bind = bind
        self.scheduler = BackgroundScheduler(timezone=self.settings.CLINIC_TIMEZONE)
        self.pool = DispatchPool(
            session_factory=self._session,
            dispatcher_factory=lambda session: build_services(session, settings=self.settings).dispatcher,
            max_workers=self.settings.DISPATCH_MAX_CONCURRENCY,
            timeout_seconds=self.settings.DISPATCH_TIMEOUT_SECONDS,
            batch_limit=self.settings.DISPATCH_BATCH_LIMIT,
        )

    def _session(self):
        return session_scope(self.bind)

    def start(self):
        """Start the background scheduler."""
        if self.scheduler.running:
            return
        self.scheduler.add_job(
            self.dispatch_triggers,
            IntervalTrigger(seconds=self.settings.DISPATCH_INTERVAL_SECONDS),
            id='dispatch_triggers',
            replace_existing=True,
            name='Dispatch Notification Triggers',
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self.fire_reminders,
            CronTrigger(minute=0),
            id='fire_reminders',
            replace_existing=True,
            name='Fire Due Reminders',
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self.sweep_retention,
            CronTrigger(day_of_week='sun', hour=3, minute=0),
            id='sweep_retention',
            replace_existing=True,
            name='Retention Sweep',
        )
        self.scheduler.start()
        logger.info("Notification scheduler started")

    def stop(self):
        """Stop the background scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Notification scheduler stopped")

    def dispatch_triggers(self):
        try:
            return self.pool.run_once()
        except Exception as e:
            logger.error(f"Trigger dispatch failed: {e}", exc_info=True)

    def fire_reminders(self):
        try:
            with self._session() as session:
                return build_services(session, settings=self.settings).reminders.fire_due()
        except Exception as e:
            logger.error(f"Reminder run failed: {e}", exc_info=True)

    def sweep_retention(self):
        try:
            with self._session() as session:
                return build_services(session, settings=self.settings).retention.sweep()
        except Exception as e:
            logger.error(f"Retention sweep failed: {e}", exc_info=True)


_scheduler: Optional[NotificationScheduler] = None


def get_scheduler() -> NotificationScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = NotificationScheduler()
    return _scheduler

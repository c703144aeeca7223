from dataclasses import dataclass
from datetime import timedelta
import logging

from ..ports.clock import Clock
from ..ports.reminders_repo import ReminderRepository
from ..ports.triggers_repo import TriggerRepository

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    triggers_deleted: int
    reminders_deleted: int


@dataclass
class RetentionCleaner:
    triggers: TriggerRepository
    reminders: ReminderRepository
    clock: Clock
    retention: timedelta = timedelta(days=7)
    batch_limit: int = 500

    def sweep(self) -> SweepResult:
        """Delete processed triggers and sent/cancelled reminders older than the retention window."""
        cutoff = self.clock.now() - self.retention
        triggers_deleted = self.triggers.delete_processed_before(cutoff, self.batch_limit)
        reminders_deleted = self.reminders.delete_terminal_before(cutoff, self.batch_limit)
        logger.info(
            f"Retention sweep before {cutoff.isoformat()}: "
            f"{triggers_deleted} trigger(s), {reminders_deleted} reminder(s) deleted"
        )
        return SweepResult(triggers_deleted=triggers_deleted, reminders_deleted=reminders_deleted)

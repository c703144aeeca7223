from dataclasses import dataclass
from typing import Optional
import logging
import time

from ..ports.appointments_repo import AppointmentStatus, AppointmentsRepository
from ..ports.clock import Clock
from ..ports.push import PreferencesRepository, PushGateway, PushTokenRegistry
from ..ports.triggers_repo import NotificationTriggerDto, TriggerRepository
from .notification_messages import DOCTOR, recipient_for, trigger_message
from .reminder_scheduler import ReminderScheduler
from ...exceptions import DispatchTimeout, PushDeliveryError

logger = logging.getLogger(__name__)

KNOWN_TYPES = frozenset(s.value for s in AppointmentStatus)

SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"
RETRY = "retry"
NOOP = "noop"


def validate_trigger(trigger: NotificationTriggerDto) -> Optional[str]:
    missing = [name for name in ("appointment_id", "patient_id", "doctor_id") if not getattr(trigger, name)]
    if missing:
        return f"missing required fields: {', '.join(missing)}"
    if trigger.type not in KNOWN_TYPES:
        return f"unknown notification type: {trigger.type}"
    return None


def check_deadline(deadline: Optional[float]) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise DispatchTimeout("Trigger processing exceeded its deadline")


@dataclass
class NotificationDispatcher:
    """Delivers one trigger at a time; every outcome is committed per trigger."""

    triggers: TriggerRepository
    appointments: AppointmentsRepository
    tokens: PushTokenRegistry
    gateway: PushGateway
    reminders: ReminderScheduler
    clock: Clock
    preferences: Optional[PreferencesRepository] = None
    max_retries: int = 5

    def process(self, trigger_id: int, deadline: Optional[float] = None) -> str:
        trigger = self.triggers.get(trigger_id)
        if trigger is None:
            logger.warning(f"Trigger {trigger_id} no longer exists")
            return NOOP
        if trigger.processed:
            logger.debug(f"Trigger {trigger_id} already processed")
            return NOOP

        problem = validate_trigger(trigger)
        if problem:
            logger.error(f"Trigger {trigger_id} rejected: {problem}")
            self.triggers.mark_failed(trigger_id, problem, self.clock.now())
            return FAILED

        role = recipient_for(trigger.type)
        recipient_id = trigger.doctor_id if role == DOCTOR else trigger.patient_id

        # Scheduled before the trigger is marked processed; a crash redrives both
        if trigger.type == AppointmentStatus.CONFIRM.value:
            self._schedule_reminder(trigger)

        if self.preferences is not None and not self.preferences.get(recipient_id).allows(trigger.type):
            check_deadline(deadline)
            self.triggers.mark_skipped(trigger_id, "suppressed by recipient preferences", self.clock.now())
            logger.info(f"Trigger {trigger_id} ({trigger.type}) suppressed for {role} {recipient_id}")
            return SKIPPED

        token = self.tokens.get_token(recipient_id)
        if not token:
            return self._retry_later(trigger, "no token", deadline)

        message = trigger_message(trigger, role)
        check_deadline(deadline)
        try:
            delivery_id = self.gateway.send(token, message.title, message.body, message.data)
        except PushDeliveryError as e:
            if e.permanent:
                logger.error(f"Trigger {trigger_id} permanently undeliverable: {e}")
                self.triggers.mark_failed(trigger_id, str(e), self.clock.now(), needs_attention=True)
                return FAILED
            return self._retry_later(trigger, f"send failed: {e}", deadline)

        if deadline is not None and time.monotonic() > deadline:
            # Late deliveries count as attempts so they stay capped
            self._retry_later(trigger, f"delivery {delivery_id} finished past the deadline", None)
            raise DispatchTimeout("Trigger processing exceeded its deadline")
        if not self.triggers.mark_sent(trigger_id, delivery_id, self.clock.now()):
            logger.info(f"Trigger {trigger_id} was completed by another worker")
            return NOOP
        logger.info(f"Trigger {trigger_id} ({trigger.type}) sent to {role} {recipient_id} ({delivery_id})")
        return SENT

    def _retry_later(self, trigger: NotificationTriggerDto, error: str, deadline: Optional[float]) -> str:
        check_deadline(deadline)
        attempts = trigger.retry_count + 1
        now = self.clock.now()
        if attempts >= self.max_retries:
            logger.error(f"Trigger {trigger.id} gave up after {attempts} attempts: {error}")
            self.triggers.mark_failed(trigger.id, f"{error} (after {attempts} attempts)", now, needs_attention=True)
            return FAILED
        logger.warning(f"Trigger {trigger.id} will be retried ({attempts}/{self.max_retries}): {error}")
        self.triggers.record_retry(trigger.id, error, now)
        return RETRY

    def _schedule_reminder(self, trigger: NotificationTriggerDto) -> None:
        appointment = self.appointments.get_by_id(trigger.appointment_id)
        if appointment is None:
            logger.warning(f"Appointment {trigger.appointment_id} missing; no reminder scheduled")
            return
        if appointment.status != AppointmentStatus.CONFIRM:
            logger.info(f"Appointment {appointment.id} is {appointment.status.value}; no reminder scheduled")
            return
        self.reminders.schedule(appointment)

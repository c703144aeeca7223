from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Iterator, List, Optional, Sequence
import logging

from ..ports.appointments_repo import AppointmentDto, AppointmentStatus, AppointmentsRepository
from ..ports.clock import Clock
from ..ports.push import PreferencesRepository, PushGateway, PushTokenRegistry
from ..ports.reminders_repo import ReminderRepository, ScheduledReminderDto
from .notification_messages import DOCTOR, PATIENT, REMINDER_TYPE, reminder_message
from ...exceptions import PushDeliveryError

logger = logging.getLogger(__name__)


def chunked(items: Sequence[int], size: int) -> Iterator[List[int]]:
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


@dataclass
class FireSummary:
    sent: int = 0
    cancelled: int = 0
    deferred: int = 0


@dataclass
class ReminderScheduler:
    reminders: ReminderRepository
    appointments: AppointmentsRepository
    tokens: PushTokenRegistry
    gateway: PushGateway
    clock: Clock
    preferences: Optional[PreferencesRepository] = None
    lead_time: timedelta = timedelta(hours=24)
    window: timedelta = timedelta(hours=1)
    batch_size: int = 450
    scan_limit: int = 1000

    def schedule(self, appointment: AppointmentDto, lead_time: Optional[timedelta] = None) -> Optional[ScheduledReminderDto]:
        """Persist a reminder ``lead_time`` before the appointment if that moment is still ahead."""
        lead = self.lead_time if lead_time is None else lead_time
        fire_at = appointment.starts_at - lead
        now = self.clock.now()
        if fire_at <= now:
            logger.info(f"Appointment {appointment.id} is too close for a reminder (fire_at={fire_at.isoformat()})")
            return None

        reminder = ScheduledReminderDto(
            appointment_id=appointment.id,
            appointment_date=appointment.appointment_date.isoformat(),
            start_time=appointment.start_time,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            patient_name=appointment.patient_name,
            doctor_name=appointment.doctor_name,
            fire_at=fire_at,
        )
        if self.reminders.add_if_absent(reminder, now):
            logger.info(f"Scheduled reminder for appointment {appointment.id} at {fire_at.isoformat()}")
        else:
            logger.debug(f"Reminder for appointment {appointment.id} at {fire_at.isoformat()} already scheduled")
        return reminder

    def cancel_for_appointment(self, appointment_id: str, reason: str = "appointment closed") -> int:
        pending = self.reminders.list_scheduled_for_appointment(appointment_id)
        ids = [r.id for r in pending if r.id is not None]
        if not ids:
            return 0
        count = self.reminders.mark_cancelled(ids, reason, self.clock.now())
        logger.info(f"Cancelled {count} reminder(s) for appointment {appointment_id}: {reason}")
        return count

    def fire_due(self) -> FireSummary:
        now = self.clock.now()
        due = self.reminders.list_due(now + self.window, self.scan_limit)
        summary = FireSummary()
        sent_ids: List[int] = []
        cancelled: Dict[str, List[int]] = {}

        for reminder in due:
            appointment = self.appointments.get_by_id(reminder.appointment_id)
            if appointment is None:
                cancelled.setdefault("not found", []).append(reminder.id)
            elif appointment.status != AppointmentStatus.CONFIRM:
                cancelled.setdefault(f"appointment status is {appointment.status.value}", []).append(reminder.id)
            elif appointment.starts_at <= now:
                cancelled.setdefault("appointment already started", []).append(reminder.id)
            elif self._deliver(reminder):
                sent_ids.append(reminder.id)
            else:
                summary.deferred += 1

        for chunk in chunked(sent_ids, self.batch_size):
            summary.sent += self.reminders.mark_sent(chunk, now)
        for reason, ids in cancelled.items():
            for chunk in chunked(ids, self.batch_size):
                summary.cancelled += self.reminders.mark_cancelled(chunk, reason, now)

        logger.info(
            f"Reminder run: {summary.sent} sent, {summary.cancelled} cancelled, {summary.deferred} deferred"
        )
        return summary

    def _deliver(self, reminder: ScheduledReminderDto) -> bool:
        """Send to patient and doctor independently; False only if every attempted send failed."""
        attempted = 0
        delivered = 0
        for role, user_id in ((PATIENT, reminder.patient_id), (DOCTOR, reminder.doctor_id)):
            if self.preferences is not None and not self.preferences.get(user_id).allows(REMINDER_TYPE):
                logger.info(f"Reminder for {role} {user_id} suppressed by preferences")
                continue
            token = self.tokens.get_token(user_id)
            if not token:
                logger.warning(f"No push token for {role} {user_id}; reminder {reminder.id} skipped for them")
                continue
            attempted += 1
            message = reminder_message(reminder, role)
            try:
                delivery_id = self.gateway.send(token, message.title, message.body, message.data)
            except PushDeliveryError as e:
                logger.error(f"Reminder {reminder.id} delivery to {role} {user_id} failed: {e}")
                continue
            delivered += 1
            logger.info(f"Reminder {reminder.id} sent to {role} {user_id} ({delivery_id})")
        return attempted == 0 or delivered > 0

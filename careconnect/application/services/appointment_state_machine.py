from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Union
import logging

from ..ports.appointments_repo import AppointmentDto, AppointmentStatus, AppointmentsRepository
from ..ports.audit_logger import AuditLogger
from ..ports.clock import Clock
from ..ports.policy import Actor, PolicyEngine
from ..ports.triggers_repo import NotificationTriggerDto
from .reminder_scheduler import ReminderScheduler
from ...exceptions import InvalidTransition, NotFoundError, PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRM, AppointmentStatus.CANCELED}),
    AppointmentStatus.CONFIRM: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELED,
        AppointmentStatus.NO_SHOW,
    }),
}

# Destinations after which a pending reminder must never fire
REMINDER_CANCELLING: FrozenSet[AppointmentStatus] = frozenset({AppointmentStatus.CANCELED, AppointmentStatus.COMPLETED})


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def is_terminal(status: AppointmentStatus) -> bool:
    return status not in ALLOWED_TRANSITIONS


def build_trigger(appointment: AppointmentDto, status: AppointmentStatus) -> NotificationTriggerDto:
    return NotificationTriggerDto(
        type=status.value,
        appointment_id=appointment.id,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        patient_name=appointment.patient_name,
        doctor_name=appointment.doctor_name,
        appointment_date=appointment.appointment_date.isoformat() if appointment.appointment_date else "N/A",
        start_time=appointment.start_time or "N/A",
    )


def parse_status(value: Union[str, AppointmentStatus]) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status. Must be one of: {[s.value for s in AppointmentStatus]}")


@dataclass
class AppointmentStateMachine:
    """Applies status transitions with compare-and-set and emits one trigger per transition."""

    appointments: AppointmentsRepository
    reminders: ReminderScheduler
    clock: Clock
    audit: Optional[AuditLogger] = None
    policy: Optional[PolicyEngine] = None
    max_attempts: int = 3

    def transition(self, appointment_id: str, new_status: Union[str, AppointmentStatus], actor: Optional[Actor] = None) -> AppointmentDto:
        target = parse_status(new_status)
        updated: Optional[AppointmentDto] = None
        current: Optional[AppointmentDto] = None

        for _ in range(self.max_attempts):
            current = self.appointments.get_by_id(appointment_id)
            if current is None:
                raise NotFoundError("Appointment not found", {"appointment_id": appointment_id})
            if actor is not None and self.policy is not None and not self.policy.authorize(actor, f"appointment:{target.value}", current):
                self._audit(f"appointment.{target.value.lower()}", actor, appointment_id, False, {"reason": "forbidden"})
                raise PermissionDenied("Not allowed to change this appointment")
            if not can_transition(current.status, target):
                self._audit(f"appointment.{target.value.lower()}", actor, appointment_id, False, {"from": current.status.value})
                raise InvalidTransition(appointment_id, current.status.value, target.value)

            updated = self.appointments.transition(
                appointment_id, current.status, target, build_trigger(current, target), self.clock.now()
            )
            if updated is not None:
                break
            logger.info(f"Appointment {appointment_id} changed concurrently; re-reading status")

        if updated is None:
            latest = self.appointments.get_by_id(appointment_id)
            raise InvalidTransition(appointment_id, latest.status.value if latest else "missing", target.value)

        logger.info(f"Appointment {appointment_id}: {current.status.value} -> {target.value}")
        self._audit(f"appointment.{target.value.lower()}", actor, appointment_id, True, {"from": current.status.value})

        if target in REMINDER_CANCELLING:
            try:
                self.reminders.cancel_for_appointment(appointment_id, reason=f"appointment {target.value.lower()}")
            except Exception:
                # fire_due re-checks the status, so a stale reminder still never fires
                logger.exception(f"Failed to cancel reminders for appointment {appointment_id}")
        return updated

    def confirm(self, appointment_id: str, actor: Optional[Actor] = None) -> AppointmentDto:
        return self.transition(appointment_id, AppointmentStatus.CONFIRM, actor)

    def cancel(self, appointment_id: str, actor: Optional[Actor] = None) -> AppointmentDto:
        return self.transition(appointment_id, AppointmentStatus.CANCELED, actor)

    def complete(self, appointment_id: str, actor: Optional[Actor] = None) -> AppointmentDto:
        return self.transition(appointment_id, AppointmentStatus.COMPLETED, actor)

    def mark_no_show(self, appointment_id: str, actor: Optional[Actor] = None) -> AppointmentDto:
        return self.transition(appointment_id, AppointmentStatus.NO_SHOW, actor)

    def _audit(self, action: str, actor: Optional[Actor], appointment_id: str, success: bool, details: dict) -> None:
        if self.audit is not None:
            self.audit.log(action, actor.user_id if actor else None, appointment_id, success, details)

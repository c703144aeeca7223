from dataclasses import dataclass
from typing import Dict

from ..ports.triggers_repo import NotificationTriggerDto
from ..ports.reminders_repo import ScheduledReminderDto

PATIENT = "patient"
DOCTOR = "doctor"

REMINDER_TYPE = "REMINDER"


@dataclass
class PushMessage:
    title: str
    body: str
    data: Dict[str, str]


_TRIGGER_TEXT = {
    "PENDING": ("New appointment request", "{patient} requested an appointment on {date} at {time}"),
    "CONFIRM": ("Appointment confirmed", "Dr. {doctor} confirmed your appointment on {date} at {time}"),
    "COMPLETED": ("Appointment completed", "Your appointment with Dr. {doctor} on {date} is complete"),
    "CANCELED": ("Appointment canceled", "Your appointment with Dr. {doctor} on {date} at {time} was canceled"),
    "NO_SHOW": ("Missed appointment", "You missed your appointment with Dr. {doctor} on {date} at {time}"),
}


def recipient_for(trigger_type: str) -> str:
    return DOCTOR if trigger_type == "PENDING" else PATIENT


def trigger_message(trigger: NotificationTriggerDto, recipient_role: str) -> PushMessage:
    title, body = _TRIGGER_TEXT[trigger.type]
    return PushMessage(
        title=title,
        body=body.format(
            patient=trigger.patient_name,
            doctor=trigger.doctor_name,
            date=trigger.appointment_date,
            time=trigger.start_time,
        ),
        data={
            "type": trigger.type,
            "appointmentId": trigger.appointment_id,
            "recipientRole": recipient_role,
            "appointmentDate": trigger.appointment_date,
            "startTime": trigger.start_time,
        },
    )


def reminder_message(reminder: ScheduledReminderDto, recipient_role: str) -> PushMessage:
    if recipient_role == DOCTOR:
        body = f"Upcoming appointment with {reminder.patient_name} on {reminder.appointment_date} at {reminder.start_time}"
    else:
        body = f"You have an appointment with Dr. {reminder.doctor_name} on {reminder.appointment_date} at {reminder.start_time}"
    return PushMessage(
        title="Appointment reminder",
        body=body,
        data={
            "type": REMINDER_TYPE,
            "appointmentId": reminder.appointment_id,
            "recipientRole": recipient_role,
            "appointmentDate": reminder.appointment_date,
            "startTime": reminder.start_time,
        },
    )

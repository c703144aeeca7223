# Models package (re-export feature modules for stable imports)
from .scheduling.slot import TimeSlot
from .scheduling.appointment import Appointment
from .notifications.trigger import NotificationTrigger
from .notifications.reminder import ScheduledReminder
from .notifications.push_token import PushToken
from .notifications.preference import NotificationPreference
from .directory.doctor import Doctor
from .directory.patient import Patient

__all__ = [
    "TimeSlot",
    "Appointment",
    "NotificationTrigger",
    "ScheduledReminder",
    "PushToken",
    "NotificationPreference",
    "Doctor",
    "Patient",
]

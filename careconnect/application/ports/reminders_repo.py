from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol
from datetime import datetime


class ReminderStatus(str, Enum):
    SCHEDULED = "scheduled"
    SENT = "sent"
    CANCELLED = "cancelled"


@dataclass
class ScheduledReminderDto:
    appointment_id: str
    appointment_date: str
    start_time: str
    patient_id: str
    doctor_id: str
    patient_name: str
    doctor_name: str
    fire_at: datetime
    status: ReminderStatus = ReminderStatus.SCHEDULED
    reason: Optional[str] = None
    id: Optional[int] = None


class ReminderRepository(Protocol):
    def add_if_absent(self, reminder: ScheduledReminderDto, now: datetime) -> bool:
        ...

    def list_scheduled_for_appointment(self, appointment_id: str) -> List[ScheduledReminderDto]:
        ...

    def list_due(self, fire_before: datetime, limit: int) -> List[ScheduledReminderDto]:
        ...

    def mark_sent(self, reminder_ids: List[int], now: datetime) -> int:
        ...

    def mark_cancelled(self, reminder_ids: List[int], reason: str, now: datetime) -> int:
        ...

    def delete_terminal_before(self, cutoff: datetime, limit: int) -> int:
        ...

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol
from datetime import datetime, date

from .slots_repo import TimeSlotDto
from .triggers_repo import NotificationTriggerDto


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRM = "CONFIRM"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"
    NO_SHOW = "NO_SHOW"

    @property
    def is_live(self) -> bool:
        return self in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRM)


@dataclass
class AppointmentDraft:
    patient_id: str
    patient_name: str
    doctor_name: str
    address: str = ""


@dataclass
class AppointmentDto:
    id: str
    doctor_id: str
    patient_id: str
    patient_name: str
    doctor_name: str
    address: str
    slot_type: str
    appointment_date: date
    start_time: str
    end_time: str
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.appointment_date, datetime.strptime(self.start_time, "%H:%M").time())


class AppointmentsRepository(Protocol):
    def create_with_slot_claim(self, doctor_id: str, appointment_date: date, slot: TimeSlotDto, draft: AppointmentDraft, now: datetime) -> AppointmentDto:
        """Claim the slot and insert the PENDING appointment plus its trigger in one transaction.

        Raises SlotUnavailable when the slot is missing or already claimed.
        """
        ...

    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        ...

    def transition(self, appointment_id: str, expected: AppointmentStatus, new_status: AppointmentStatus, trigger: NotificationTriggerDto, now: datetime) -> Optional[AppointmentDto]:
        """Compare-and-set the status and append the trigger; None when the status moved underneath."""
        ...

    def list_for_patient(self, patient_id: str) -> List[AppointmentDto]:
        ...

    def list_for_doctor(self, doctor_id: str) -> List[AppointmentDto]:
        ...

    def list_holding_for_doctor_date(self, doctor_id: str, appointment_date: date) -> List[AppointmentDto]:
        """Every appointment on that date that still holds its slot, i.e. any status except CANCELED."""
        ...

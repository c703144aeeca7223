from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Union
import logging

from ..ports.appointments_repo import AppointmentDraft, AppointmentDto, AppointmentsRepository
from ..ports.audit_logger import AuditLogger
from ..ports.auth_provider import AuthProvider
from ..ports.clock import Clock
from ..ports.directory import Directory
from ..ports.slots_repo import SlotRepository, TimeSlotDto
from .schedule_generator import parse_hhmm, parse_iso_date
from ...exceptions import NotFoundError, PermissionDenied, SlotUnavailable, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class BookingCoordinator:
    """Turns an available slot and a patient into a PENDING appointment in one atomic claim."""

    slots: SlotRepository
    appointments: AppointmentsRepository
    directory: Directory
    clock: Clock
    audit: Optional[AuditLogger] = None

    def list_available(self, doctor_id: str, slot_date: Union[str, date]) -> List[TimeSlotDto]:
        return self.slots.list_available(doctor_id, parse_iso_date(slot_date))

    def book_slot(self, doctor_id: str, slot_date: Union[str, date], slot: TimeSlotDto, patient_id: str) -> AppointmentDto:
        if not doctor_id or not patient_id:
            raise ValidationError("doctor_id and patient_id are required")
        day = parse_iso_date(slot_date)
        starts_at = datetime.combine(day, parse_hhmm(slot.start_time))
        if parse_hhmm(slot.end_time) <= starts_at.time():
            raise ValidationError("Slot must end after it starts")
        if starts_at <= self.clock.now():
            raise ValidationError("Cannot book a time slot in the past")

        doctor = self.directory.get_doctor(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found", {"doctor_id": doctor_id})
        patient = self.directory.get_patient(patient_id)
        if not patient:
            raise NotFoundError("Patient not found", {"patient_id": patient_id})

        draft = AppointmentDraft(
            patient_id=patient_id,
            patient_name=patient.name,
            doctor_name=doctor.name,
            address=doctor.address,
        )
        try:
            appointment = self.appointments.create_with_slot_claim(doctor_id, day, slot, draft, self.clock.now())
        except SlotUnavailable:
            logger.info(f"Slot {day.isoformat()} {slot.start_time} for doctor {doctor_id} lost to another booking")
            self._audit(patient_id, f"{doctor_id}/{day.isoformat()}/{slot.start_time}", False, {"reason": "slot unavailable"})
            raise

        logger.info(f"Booked appointment {appointment.id} for patient {patient_id} with doctor {doctor_id}")
        self._audit(patient_id, appointment.id, True, {"date": day.isoformat(), "start_time": slot.start_time})
        return appointment

    def book_for_current_user(self, auth: AuthProvider, doctor_id: str, slot_date: Union[str, date], slot: TimeSlotDto) -> AppointmentDto:
        patient_id = auth.current_user_id()
        if not patient_id:
            raise PermissionDenied("Authentication required")
        return self.book_slot(doctor_id, slot_date, slot, patient_id)

    def _audit(self, actor_id: str, resource_id: str, success: bool, details: dict) -> None:
        if self.audit is not None:
            self.audit.log("appointment.book", actor_id, resource_id, success, details)

from datetime import date, datetime
from typing import List, Optional
import uuid
from sqlalchemy import update
from sqlmodel import Session, select

from .....db.models import Appointment, TimeSlot
from .....application.ports.appointments_repo import (
    AppointmentDraft,
    AppointmentDto,
    AppointmentStatus,
    AppointmentsRepository,
)
from .....application.ports.slots_repo import SlotType, TimeSlotDto
from .....application.ports.triggers_repo import NotificationTriggerDto
from .....exceptions import SlotUnavailable
from .triggers_repository_sql import trigger_row

RELEASED_STATUS = AppointmentStatus.CANCELED.value


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            doctor_id=a.doctor_id,
            patient_id=a.patient_id,
            patient_name=a.patient_name,
            doctor_name=a.doctor_name,
            address=a.address,
            slot_type=a.slot_type,
            appointment_date=a.appointment_date,
            start_time=a.start_time,
            end_time=a.end_time,
            status=AppointmentStatus(a.status),
            created_at=a.created_at,
            updated_at=a.updated_at,
        )

    def create_with_slot_claim(self, doctor_id: str, appointment_date: date, slot: TimeSlotDto, draft: AppointmentDraft, now: datetime) -> AppointmentDto:
        slot_type = SlotType(slot.slot_type).value
        try:
            # Compare-and-set on the availability flag; only one racer matches a row
            claimed = self.session.execute(
                update(TimeSlot)
                .where(TimeSlot.doctor_id == doctor_id)
                .where(TimeSlot.slot_date == appointment_date)
                .where(TimeSlot.start_time == slot.start_time)
                .where(TimeSlot.end_time == slot.end_time)
                .where(TimeSlot.duration_minutes == slot.duration_minutes)
                .where(TimeSlot.slot_type == slot_type)
                .where(TimeSlot.available == True)  # noqa: E712
                .values(available=False)
                .execution_options(synchronize_session=False)
            ).rowcount
            if claimed != 1:
                self.session.rollback()
                raise SlotUnavailable(doctor_id, appointment_date.isoformat(), slot.start_time)

            appt = Appointment(
                id=str(uuid.uuid4()),
                doctor_id=doctor_id,
                patient_id=draft.patient_id,
                patient_name=draft.patient_name,
                doctor_name=draft.doctor_name,
                address=draft.address,
                slot_type=slot_type,
                appointment_date=appointment_date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                status=AppointmentStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            self.session.add(appt)
            self.session.add(trigger_row(NotificationTriggerDto(
                type=AppointmentStatus.PENDING.value,
                appointment_id=appt.id,
                patient_id=appt.patient_id,
                doctor_id=appt.doctor_id,
                patient_name=appt.patient_name,
                doctor_name=appt.doctor_name,
                appointment_date=appointment_date.isoformat(),
                start_time=appt.start_time,
            ), now))
            self.session.commit()
        except SlotUnavailable:
            raise
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(appt)
        return self._appt_to_dto(appt)

    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        a = self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()
        return self._appt_to_dto(a) if a else None

    def transition(self, appointment_id: str, expected: AppointmentStatus, new_status: AppointmentStatus, trigger: NotificationTriggerDto, now: datetime) -> Optional[AppointmentDto]:
        try:
            changed = self.session.execute(
                update(Appointment)
                .where(Appointment.id == appointment_id)
                .where(Appointment.status == expected.value)
                .values(status=new_status.value, updated_at=now)
                .execution_options(synchronize_session=False)
            ).rowcount
            if changed != 1:
                self.session.rollback()
                return None
            self.session.add(trigger_row(trigger, now))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return self.get_by_id(appointment_id)

    def list_for_patient(self, patient_id: str) -> List[AppointmentDto]:
        rows = self.session.exec(
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def list_for_doctor(self, doctor_id: str) -> List[AppointmentDto]:
        rows = self.session.exec(
            select(Appointment)
            .where(Appointment.doctor_id == doctor_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def list_holding_for_doctor_date(self, doctor_id: str, appointment_date: date) -> List[AppointmentDto]:
        rows = self.session.exec(
            select(Appointment)
            .where(Appointment.doctor_id == doctor_id)
            .where(Appointment.appointment_date == appointment_date)
            .where(Appointment.status != RELEASED_STATUS)
            .order_by(Appointment.start_time)
        ).all()
        return [self._appt_to_dto(r) for r in rows]

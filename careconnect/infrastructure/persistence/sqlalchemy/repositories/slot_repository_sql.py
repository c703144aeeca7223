from datetime import date
from typing import List, Optional
from sqlalchemy import delete, update
from sqlmodel import Session, select

from .....db.models import TimeSlot
from .....application.ports.slots_repo import SlotRepository, SlotType, TimeSlotDto


class SqlSlotRepository(SlotRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, s: TimeSlot) -> TimeSlotDto:
        return TimeSlotDto(
            start_time=s.start_time,
            end_time=s.end_time,
            duration_minutes=s.duration_minutes,
            slot_type=SlotType(s.slot_type),
            available=bool(s.available),
        )

    def _row(self, doctor_id: str, slot_date: date, slot: TimeSlotDto) -> TimeSlot:
        return TimeSlot(
            doctor_id=doctor_id,
            slot_date=slot_date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            duration_minutes=slot.duration_minutes,
            slot_type=SlotType(slot.slot_type).value,
            available=slot.available,
        )

    def _query(self, doctor_id: str, slot_date: date):
        return (
            select(TimeSlot)
            .where(TimeSlot.doctor_id == doctor_id)
            .where(TimeSlot.slot_date == slot_date)
        )

    def list_slots(self, doctor_id: str, slot_date: date) -> List[TimeSlotDto]:
        rows = self.session.exec(self._query(doctor_id, slot_date).order_by(TimeSlot.start_time)).all()
        return [self._to_dto(r) for r in rows]

    def list_available(self, doctor_id: str, slot_date: date) -> List[TimeSlotDto]:
        rows = self.session.exec(
            self._query(doctor_id, slot_date)
            .where(TimeSlot.available == True)  # noqa: E712
            .order_by(TimeSlot.start_time)
        ).all()
        return [self._to_dto(r) for r in rows]

    def get_slot(self, doctor_id: str, slot_date: date, start_time: str) -> Optional[TimeSlotDto]:
        row = self.session.exec(self._query(doctor_id, slot_date).where(TimeSlot.start_time == start_time)).first()
        return self._to_dto(row) if row else None

    def replace_range(self, doctor_id: str, slot_date: date, range_start: str, range_end: str, new_slots: List[TimeSlotDto]) -> None:
        try:
            self.session.execute(
                delete(TimeSlot)
                .where(TimeSlot.doctor_id == doctor_id)
                .where(TimeSlot.slot_date == slot_date)
                .where(TimeSlot.start_time >= range_start)
                .where(TimeSlot.start_time < range_end)
                .execution_options(synchronize_session=False)
            )
            for slot in new_slots:
                self.session.add(self._row(doctor_id, slot_date, slot))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def upsert_slot(self, doctor_id: str, slot_date: date, slot: TimeSlotDto) -> None:
        try:
            row = self.session.exec(self._query(doctor_id, slot_date).where(TimeSlot.start_time == slot.start_time)).first()
            if row is None:
                row = self._row(doctor_id, slot_date, slot)
            else:
                row.end_time = slot.end_time
                row.duration_minutes = slot.duration_minutes
                row.slot_type = SlotType(slot.slot_type).value
                row.available = slot.available
            self.session.add(row)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def delete_slot(self, doctor_id: str, slot_date: date, start_time: str) -> bool:
        try:
            result = self.session.execute(
                delete(TimeSlot)
                .where(TimeSlot.doctor_id == doctor_id)
                .where(TimeSlot.slot_date == slot_date)
                .where(TimeSlot.start_time == start_time)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return result.rowcount > 0
        except Exception:
            self.session.rollback()
            raise

    def set_availability(self, doctor_id: str, slot_date: date, start_time: str, available: bool) -> bool:
        try:
            result = self.session.execute(
                update(TimeSlot)
                .where(TimeSlot.doctor_id == doctor_id)
                .where(TimeSlot.slot_date == slot_date)
                .where(TimeSlot.start_time == start_time)
                .values(available=available)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return result.rowcount > 0
        except Exception:
            self.session.rollback()
            raise

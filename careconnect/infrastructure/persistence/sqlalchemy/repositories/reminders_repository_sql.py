from datetime import datetime
from typing import List
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import ScheduledReminder
from .....application.ports.reminders_repo import ReminderRepository, ReminderStatus, ScheduledReminderDto

TERMINAL_STATUSES = [ReminderStatus.SENT.value, ReminderStatus.CANCELLED.value]


class SqlReminderRepository(ReminderRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, r: ScheduledReminder) -> ScheduledReminderDto:
        return ScheduledReminderDto(
            id=r.id,
            appointment_id=r.appointment_id,
            appointment_date=r.appointment_date,
            start_time=r.start_time,
            patient_id=r.patient_id,
            doctor_id=r.doctor_id,
            patient_name=r.patient_name,
            doctor_name=r.doctor_name,
            fire_at=r.fire_at,
            status=ReminderStatus(r.status),
            reason=r.reason,
        )

    def add_if_absent(self, reminder: ScheduledReminderDto, now: datetime) -> bool:
        existing = self.session.exec(
            select(ScheduledReminder)
            .where(ScheduledReminder.appointment_id == reminder.appointment_id)
            .where(ScheduledReminder.fire_at == reminder.fire_at)
        ).first()
        if existing:
            return False
        row = ScheduledReminder(
            appointment_id=reminder.appointment_id,
            appointment_date=reminder.appointment_date,
            start_time=reminder.start_time,
            patient_id=reminder.patient_id,
            doctor_id=reminder.doctor_id,
            patient_name=reminder.patient_name,
            doctor_name=reminder.doctor_name,
            fire_at=reminder.fire_at,
            status=ReminderStatus.SCHEDULED.value,
            created_at=now,
            updated_at=now,
        )
        try:
            self.session.add(row)
            self.session.commit()
        except IntegrityError:
            # Another worker scheduled the same reminder first
            self.session.rollback()
            return False
        except Exception:
            self.session.rollback()
            raise
        reminder.id = row.id
        return True

    def list_scheduled_for_appointment(self, appointment_id: str) -> List[ScheduledReminderDto]:
        rows = self.session.exec(
            select(ScheduledReminder)
            .where(ScheduledReminder.appointment_id == appointment_id)
            .where(ScheduledReminder.status == ReminderStatus.SCHEDULED.value)
        ).all()
        return [self._to_dto(r) for r in rows]

    def list_due(self, fire_before: datetime, limit: int) -> List[ScheduledReminderDto]:
        rows = self.session.exec(
            select(ScheduledReminder)
            .where(ScheduledReminder.status == ReminderStatus.SCHEDULED.value)
            .where(ScheduledReminder.fire_at < fire_before)
            .order_by(ScheduledReminder.fire_at)
            .limit(limit)
        ).all()
        return [self._to_dto(r) for r in rows]

    def _close(self, reminder_ids: List[int], **values) -> int:
        if not reminder_ids:
            return 0
        try:
            result = self.session.execute(
                update(ScheduledReminder)
                .where(ScheduledReminder.id.in_(reminder_ids))
                .where(ScheduledReminder.status == ReminderStatus.SCHEDULED.value)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return result.rowcount
        except Exception:
            self.session.rollback()
            raise

    def mark_sent(self, reminder_ids: List[int], now: datetime) -> int:
        return self._close(reminder_ids, status=ReminderStatus.SENT.value, updated_at=now)

    def mark_cancelled(self, reminder_ids: List[int], reason: str, now: datetime) -> int:
        return self._close(reminder_ids, status=ReminderStatus.CANCELLED.value, reason=reason, updated_at=now)

    def delete_terminal_before(self, cutoff: datetime, limit: int) -> int:
        try:
            ids = self.session.exec(
                select(ScheduledReminder.id)
                .where(ScheduledReminder.status.in_(TERMINAL_STATUSES))
                .where(ScheduledReminder.updated_at < cutoff)
                .order_by(ScheduledReminder.updated_at)
                .limit(limit)
            ).all()
            if not ids:
                return 0
            result = self.session.execute(
                delete(ScheduledReminder)
                .where(ScheduledReminder.id.in_(ids))
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return result.rowcount
        except Exception:
            self.session.rollback()
            raise

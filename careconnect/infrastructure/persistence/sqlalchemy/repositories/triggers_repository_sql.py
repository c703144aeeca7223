from datetime import datetime
from typing import List, Optional
from sqlalchemy import delete, update
from sqlmodel import Session, select

from .....db.models import NotificationTrigger
from .....application.ports.triggers_repo import NotificationTriggerDto, TriggerRepository


def trigger_row(trigger: NotificationTriggerDto, now: datetime) -> NotificationTrigger:
    return NotificationTrigger(
        type=trigger.type,
        appointment_id=trigger.appointment_id,
        patient_id=trigger.patient_id,
        doctor_id=trigger.doctor_id,
        patient_name=trigger.patient_name,
        doctor_name=trigger.doctor_name,
        appointment_date=trigger.appointment_date,
        start_time=trigger.start_time,
        processed=False,
        retry_count=0,
        created_at=now,
        updated_at=now,
    )


class SqlTriggerRepository(TriggerRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, t: NotificationTrigger) -> NotificationTriggerDto:
        return NotificationTriggerDto(
            id=t.id,
            type=t.type,
            appointment_id=t.appointment_id,
            patient_id=t.patient_id,
            doctor_id=t.doctor_id,
            patient_name=t.patient_name,
            doctor_name=t.doctor_name,
            appointment_date=t.appointment_date,
            start_time=t.start_time,
            processed=bool(t.processed),
            retry_count=t.retry_count,
            error=t.error,
            skipped_reason=t.skipped_reason,
            needs_attention=bool(t.needs_attention),
            delivery_id=t.delivery_id,
            sent_at=t.sent_at,
            created_at=t.created_at,
        )

    def get(self, trigger_id: int) -> Optional[NotificationTriggerDto]:
        t = self.session.exec(select(NotificationTrigger).where(NotificationTrigger.id == trigger_id)).first()
        return self._to_dto(t) if t else None

    def list_unprocessed(self, limit: int) -> List[NotificationTriggerDto]:
        rows = self.session.exec(
            select(NotificationTrigger)
            .where(NotificationTrigger.processed == False)  # noqa: E712
            .order_by(NotificationTrigger.created_at, NotificationTrigger.id)
            .limit(limit)
        ).all()
        return [self._to_dto(r) for r in rows]

    def list_for_appointment(self, appointment_id: str) -> List[NotificationTriggerDto]:
        rows = self.session.exec(
            select(NotificationTrigger)
            .where(NotificationTrigger.appointment_id == appointment_id)
            .order_by(NotificationTrigger.id)
        ).all()
        return [self._to_dto(r) for r in rows]

    def _update_unprocessed(self, trigger_id: int, **values) -> bool:
        # Conditional on processed=false so concurrent workers never both commit
        try:
            result = self.session.execute(
                update(NotificationTrigger)
                .where(NotificationTrigger.id == trigger_id)
                .where(NotificationTrigger.processed == False)  # noqa: E712
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return result.rowcount == 1
        except Exception:
            self.session.rollback()
            raise

    def mark_sent(self, trigger_id: int, delivery_id: str, sent_at: datetime) -> bool:
        return self._update_unprocessed(
            trigger_id, processed=True, delivery_id=delivery_id, sent_at=sent_at, error=None, updated_at=sent_at
        )

    def mark_skipped(self, trigger_id: int, reason: str, now: datetime) -> bool:
        return self._update_unprocessed(trigger_id, processed=True, skipped_reason=reason, error=None, updated_at=now)

    def mark_failed(self, trigger_id: int, error: str, now: datetime, needs_attention: bool = False) -> bool:
        return self._update_unprocessed(
            trigger_id, processed=True, error=error, needs_attention=needs_attention, updated_at=now
        )

    def record_retry(self, trigger_id: int, error: str, now: datetime) -> bool:
        return self._update_unprocessed(
            trigger_id, retry_count=NotificationTrigger.retry_count + 1, error=error, updated_at=now
        )

    def delete_processed_before(self, cutoff: datetime, limit: int) -> int:
        try:
            ids = self.session.exec(
                select(NotificationTrigger.id)
                .where(NotificationTrigger.processed == True)  # noqa: E712
                .where(NotificationTrigger.updated_at < cutoff)
                .order_by(NotificationTrigger.updated_at)
                .limit(limit)
            ).all()
            if not ids:
                return 0
            result = self.session.execute(
                delete(NotificationTrigger)
                .where(NotificationTrigger.id.in_(ids))
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            return result.rowcount
        except Exception:
            self.session.rollback()
            raise

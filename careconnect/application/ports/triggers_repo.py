from dataclasses import dataclass, field
from typing import List, Optional, Protocol
from datetime import datetime


@dataclass
class NotificationTriggerDto:
    type: str
    appointment_id: str
    patient_id: str
    doctor_id: str
    patient_name: str
    doctor_name: str
    appointment_date: str
    start_time: str
    processed: bool = False
    retry_count: int = 0
    error: Optional[str] = None
    skipped_reason: Optional[str] = None
    needs_attention: bool = False
    delivery_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = field(default=None)


class TriggerRepository(Protocol):
    def get(self, trigger_id: int) -> Optional[NotificationTriggerDto]:
        ...

    def list_unprocessed(self, limit: int) -> List[NotificationTriggerDto]:
        ...

    def list_for_appointment(self, appointment_id: str) -> List[NotificationTriggerDto]:
        ...

    def mark_sent(self, trigger_id: int, delivery_id: str, sent_at: datetime) -> bool:
        ...

    def mark_skipped(self, trigger_id: int, reason: str, now: datetime) -> bool:
        ...

    def mark_failed(self, trigger_id: int, error: str, now: datetime, needs_attention: bool = False) -> bool:
        """Permanent failure: processed, never retried."""
        ...

    def record_retry(self, trigger_id: int, error: str, now: datetime) -> bool:
        """Transient failure: stays unprocessed, retry_count incremented."""
        ...

    def delete_processed_before(self, cutoff: datetime, limit: int) -> int:
        ...

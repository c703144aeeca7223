# careconnect/db/models/notifications/trigger.py
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

class NotificationTrigger(SQLModel, table=True):
    __tablename__ = "notification_triggers"
    id: Optional[int] = Field(default=None, primary_key=True)
    type: str
    appointment_id: str = Field(index=True)
    patient_id: str
    doctor_id: str
    patient_name: str
    doctor_name: str
    appointment_date: str
    start_time: str
    processed: bool = Field(default=False, index=True)
    retry_count: int = Field(default=0)
    error: Optional[str] = None
    skipped_reason: Optional[str] = None
    needs_attention: bool = Field(default=False)
    delivery_id: Optional[str] = None
    sent_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=False))
    created_at: datetime = Field(index=True, sa_type=DateTime(timezone=False))
    updated_at: datetime = Field(sa_type=DateTime(timezone=False))

# careconnect/db/models/notifications/reminder.py
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, UniqueConstraint
from datetime import datetime

class ScheduledReminder(SQLModel, table=True):
    __tablename__ = "scheduled_reminders"
    __table_args__ = (UniqueConstraint("appointment_id", "fire_at", name="uq_scheduled_reminders_appointment_fire_at"),)
    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_id: str = Field(index=True)
    appointment_date: str
    start_time: str
    patient_id: str
    doctor_id: str
    patient_name: str
    doctor_name: str
    fire_at: datetime = Field(index=True, sa_type=DateTime(timezone=False))
    status: str = Field(default="scheduled", index=True)
    reason: Optional[str] = None
    created_at: datetime = Field(sa_type=DateTime(timezone=False))
    updated_at: datetime = Field(sa_type=DateTime(timezone=False))

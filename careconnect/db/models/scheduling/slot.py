# careconnect/db/models/scheduling/slot.py
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint
from datetime import date

class TimeSlot(SQLModel, table=True):
    __tablename__ = "time_slots"
    __table_args__ = (UniqueConstraint("doctor_id", "slot_date", "start_time", name="uq_time_slots_doctor_date_start"),)
    id: Optional[int] = Field(default=None, primary_key=True)
    doctor_id: str = Field(index=True)
    slot_date: date = Field(index=True)
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    duration_minutes: int
    slot_type: str = Field(default="CONSULT")
    available: bool = Field(default=True)

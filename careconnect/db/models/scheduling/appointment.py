# careconnect/db/models/scheduling/appointment.py
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime, date

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: str = Field(primary_key=True)
    doctor_id: str = Field(index=True)
    patient_id: str = Field(index=True)
    patient_name: str
    doctor_name: str
    address: str = Field(default="")
    slot_type: str = Field(default="CONSULT")
    appointment_date: date = Field(index=True)
    start_time: str
    end_time: str
    status: str = Field(default="PENDING", index=True)
    created_at: datetime = Field(sa_type=DateTime(timezone=False))
    updated_at: datetime = Field(sa_type=DateTime(timezone=False))

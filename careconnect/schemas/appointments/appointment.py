# careconnect/schemas/appointments/appointment.py
from pydantic import BaseModel
from datetime import datetime

from ..scheduling.schedule import TimeSlotSchema


class AppointmentCreate(BaseModel):
    doctor_id: str
    appointment_date: str  # YYYY-MM-DD
    slot: TimeSlotSchema


class AppointmentStatusUpdate(BaseModel):
    status: str


class AppointmentResponse(BaseModel):
    id: str
    doctor_id: str
    patient_id: str
    patient_name: str
    doctor_name: str
    address: str
    slot_type: str
    appointment_date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    status: str
    created_at: datetime
    updated_at: datetime

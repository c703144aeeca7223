# careconnect/schemas/scheduling/schedule.py
from pydantic import BaseModel, Field
from typing import List, Optional

from ...application.ports.slots_repo import SlotType


class TimeSlotSchema(BaseModel):
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")  # HH:MM
    end_time: str = Field(pattern=r"^\d{2}:\d{2}$")  # HH:MM
    duration_minutes: int = Field(gt=0)
    slot_type: SlotType = SlotType.CONSULT
    available: bool = True


class GenerateSlotsRequest(BaseModel):
    start: str = Field(pattern=r"^\d{2}:\d{2}$")
    end: str = Field(pattern=r"^\d{2}:\d{2}$")
    duration_minutes: int = Field(gt=0, le=480)
    slot_type: SlotType = SlotType.CONSULT
    cascade_cancel: bool = False


class UpsertSlotRequest(BaseModel):
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    duration_minutes: int = Field(gt=0, le=480)
    slot_type: SlotType = SlotType.CONSULT
    available: bool = True


class AvailabilityRequest(BaseModel):
    available: bool


class OpenDaysRequest(BaseModel):
    dates: List[str]  # YYYY-MM-DD
    duration_minutes: Optional[int] = Field(default=None, gt=0, le=480)


class ScheduleResponse(BaseModel):
    doctor_id: str
    date: str
    slots: List[TimeSlotSchema]

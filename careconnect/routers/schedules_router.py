from typing import Dict, List
from fastapi import APIRouter, Depends
import logging

from ..application.ports.policy import Actor
from ..application.ports.slots_repo import TimeSlotDto
from ..container import Services
from ..schemas.scheduling.schedule import (
    AvailabilityRequest,
    GenerateSlotsRequest,
    OpenDaysRequest,
    ScheduleResponse,
    TimeSlotSchema,
    UpsertSlotRequest,
)
from ..schemas.common.common import MessageResponse
from .deps import authorize, get_current_actor, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors/{doctor_id}/schedules", tags=["Schedules"])


def _slot_schema(slot: TimeSlotDto) -> TimeSlotSchema:
    return TimeSlotSchema(
        start_time=slot.start_time,
        end_time=slot.end_time,
        duration_minutes=slot.duration_minutes,
        slot_type=slot.slot_type,
        available=slot.available,
    )


def _schedule(doctor_id: str, slot_date: str, slots: List[TimeSlotDto]) -> ScheduleResponse:
    return ScheduleResponse(doctor_id=doctor_id, date=slot_date, slots=[_slot_schema(s) for s in slots])


@router.get("/{slot_date}", response_model=ScheduleResponse)
def get_schedule(doctor_id: str, slot_date: str, services: Services = Depends(get_services)):
    return _schedule(doctor_id, slot_date, services.schedules.list_slots(doctor_id, slot_date))


@router.get("/{slot_date}/available", response_model=ScheduleResponse)
def get_available_slots(doctor_id: str, slot_date: str, services: Services = Depends(get_services)):
    return _schedule(doctor_id, slot_date, services.booking.list_available(doctor_id, slot_date))


@router.post("/{slot_date}/generate", response_model=ScheduleResponse)
def generate_slots(
    doctor_id: str,
    slot_date: str,
    body: GenerateSlotsRequest,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    authorize(actor, "schedule:write", doctor_id)
    slots = services.schedules.generate_range(
        doctor_id,
        slot_date,
        body.start,
        body.end,
        body.duration_minutes,
        slot_type=body.slot_type,
        cascade_cancel=body.cascade_cancel,
        actor=actor,
    )
    return _schedule(doctor_id, slot_date, slots)


@router.post("/open", response_model=Dict[str, int])
def open_working_days(
    doctor_id: str,
    body: OpenDaysRequest,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    authorize(actor, "schedule:write", doctor_id)
    return services.schedules.open_working_days(doctor_id, body.dates, body.duration_minutes)


@router.put("/{slot_date}/slots", response_model=TimeSlotSchema)
def upsert_slot(
    doctor_id: str,
    slot_date: str,
    body: UpsertSlotRequest,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    authorize(actor, "schedule:write", doctor_id)
    slot = services.schedules.upsert_slot(
        doctor_id, slot_date, body.start_time, body.duration_minutes, body.slot_type, body.available
    )
    return _slot_schema(slot)


@router.delete("/{slot_date}/slots/{start_time}", response_model=MessageResponse)
def delete_slot(
    doctor_id: str,
    slot_date: str,
    start_time: str,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    authorize(actor, "schedule:write", doctor_id)
    services.schedules.delete_slot(doctor_id, slot_date, start_time)
    return MessageResponse(message="Time slot deleted")


@router.put("/{slot_date}/slots/{start_time}/availability", response_model=MessageResponse)
def set_slot_availability(
    doctor_id: str,
    slot_date: str,
    start_time: str,
    body: AvailabilityRequest,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    authorize(actor, "schedule:availability", doctor_id)
    services.schedules.set_availability(doctor_id, slot_date, start_time, body.available)
    return MessageResponse(message="Availability updated")

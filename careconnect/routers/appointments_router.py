from typing import List
from fastapi import APIRouter, BackgroundTasks, Depends, status
import logging

from ..application.ports.appointments_repo import AppointmentDto
from ..application.ports.policy import Actor
from ..application.ports.slots_repo import TimeSlotDto
from ..container import Services
from ..exceptions import NotFoundError
from ..schemas.appointments.appointment import AppointmentCreate, AppointmentResponse, AppointmentStatusUpdate
from ..schemas.common.common import ErrorResponse
from .deps import TriggerDispatch, authorize, get_current_actor, get_services, get_trigger_dispatch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def _to_response(a: AppointmentDto) -> AppointmentResponse:
    return AppointmentResponse(
        id=a.id,
        doctor_id=a.doctor_id,
        patient_id=a.patient_id,
        patient_name=a.patient_name,
        doctor_name=a.doctor_name,
        address=a.address,
        slot_type=a.slot_type,
        appointment_date=a.appointment_date.strftime("%Y-%m-%d"),
        start_time=a.start_time,
        end_time=a.end_time,
        status=a.status.value,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Slot already taken"}},
)
def book_appointment(
    appointment_data: AppointmentCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
    dispatch: TriggerDispatch = Depends(get_trigger_dispatch),
):
    authorize(actor, "appointment:book", actor.user_id)
    slot = TimeSlotDto(
        start_time=appointment_data.slot.start_time,
        end_time=appointment_data.slot.end_time,
        duration_minutes=appointment_data.slot.duration_minutes,
        slot_type=appointment_data.slot.slot_type,
    )
    appt = services.booking.book_slot(appointment_data.doctor_id, appointment_data.appointment_date, slot, actor.user_id)
    background_tasks.add_task(dispatch, appt.id)
    return _to_response(appt)


@router.get("", response_model=List[AppointmentResponse])
def get_my_appointments(
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    if actor.role == "doctor":
        appts = services.appointments.list_for_doctor(actor.user_id)
    else:
        appts = services.appointments.list_for_patient(actor.user_id)
    return [_to_response(a) for a in appts]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    appt = services.appointments.get_by_id(appointment_id)
    if appt is None:
        raise NotFoundError("Appointment not found", {"appointment_id": appointment_id})
    authorize(actor, "appointment:read", appt)
    return _to_response(appt)


@router.put("/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: str,
    body: AppointmentStatusUpdate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
    dispatch: TriggerDispatch = Depends(get_trigger_dispatch),
):
    appt = services.state_machine.transition(appointment_id, body.status, actor)
    background_tasks.add_task(dispatch, appt.id)
    return _to_response(appt)

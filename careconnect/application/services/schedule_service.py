from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Union
import logging

from ..ports.appointments_repo import AppointmentDto, AppointmentStatus, AppointmentsRepository
from ..ports.audit_logger import AuditLogger
from ..ports.policy import Actor
from ..ports.slots_repo import SlotRepository, SlotType, TimeSlotDto
from .appointment_state_machine import AppointmentStateMachine
from .schedule_generator import (
    DEFAULT_WORKING_HOURS,
    TimeLike,
    ensure_ordered,
    format_hhmm,
    generate,
    generate_for_ranges,
    parse_hhmm,
    parse_iso_date,
    slot_end,
)
from ...exceptions import BookedSlotConflict, InvalidTransition, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ScheduleService:
    """Maintains a doctor's per-date slots without orphaning live appointments."""

    slots: SlotRepository
    appointments: AppointmentsRepository
    state_machine: AppointmentStateMachine
    audit: Optional[AuditLogger] = None
    default_slot_minutes: int = 30

    def list_slots(self, doctor_id: str, slot_date: Union[str, date]) -> List[TimeSlotDto]:
        return self.slots.list_slots(doctor_id, parse_iso_date(slot_date))

    def generate_range(
        self,
        doctor_id: str,
        slot_date: Union[str, date],
        start: TimeLike,
        end: TimeLike,
        duration_minutes: int,
        slot_type: SlotType = SlotType.CONSULT,
        cascade_cancel: bool = False,
        actor: Optional[Actor] = None,
    ) -> List[TimeSlotDto]:
        new_slots = generate(start, end, duration_minutes, slot_type)
        self.replace_range(doctor_id, slot_date, start, end, new_slots, cascade_cancel=cascade_cancel, actor=actor)
        return self.list_slots(doctor_id, slot_date)

    def replace_range(
        self,
        doctor_id: str,
        slot_date: Union[str, date],
        range_start: TimeLike,
        range_end: TimeLike,
        new_slots: List[TimeSlotDto],
        cascade_cancel: bool = False,
        actor: Optional[Actor] = None,
    ) -> None:
        """Swap every slot starting in ``[range_start, range_end)`` for ``new_slots``.

        Any slot still held by a non-canceled appointment blocks the swap with
        BookedSlotConflict. With ``cascade_cancel`` the PENDING and CONFIRM
        holders are canceled through the state machine first; COMPLETED and
        NO_SHOW holders always block. A holder that settles while the cascade
        runs keeps its slot and the new slots overlapping it are dropped.
        """
        day = parse_iso_date(slot_date)
        lo = format_hhmm(parse_hhmm(range_start))
        hi = format_hhmm(parse_hhmm(range_end))
        if lo > hi:
            raise ValidationError("Range start must not be after range end")

        ordered = ensure_ordered(new_slots)
        current = self.slots.list_slots(doctor_id, day)
        kept = [s for s in current if not (lo <= s.start_time < hi)]
        ensure_ordered(kept + ordered)

        holders = self._holding_between(doctor_id, day, lo, hi)
        blocking = [a.id for a in holders if not (cascade_cancel and a.status.is_live)]
        if blocking:
            self._audit("schedule.replace", actor, doctor_id, False, {"date": day.isoformat(), "booked": blocking})
            raise BookedSlotConflict(blocking)

        cancelled: List[str] = []
        settled: List[AppointmentDto] = []
        for appointment in holders:
            logger.info(f"Cancelling appointment {appointment.id}: slot removed by schedule change")
            try:
                self.state_machine.cancel(appointment.id)
            except InvalidTransition:
                latest = self.appointments.get_by_id(appointment.id)
                if latest is None or latest.status == AppointmentStatus.CANCELED:
                    continue
                logger.warning(f"Appointment {appointment.id} moved to {latest.status.value} during schedule change; keeping its slot")
                settled.append(latest)
                continue
            cancelled.append(appointment.id)

        if settled:
            ordered = _around_held(ordered, current, settled)

        self.slots.replace_range(doctor_id, day, lo, hi, ordered)
        logger.info(f"Replaced {lo}-{hi} on {day.isoformat()} for doctor {doctor_id} with {len(ordered)} slot(s)")
        self._audit("schedule.replace", actor, doctor_id, True, {
            "date": day.isoformat(), "start": lo, "end": hi, "slots": len(ordered),
            "cancelled": cancelled, "kept": [a.id for a in settled],
        })

    def open_working_days(self, doctor_id: str, dates: Iterable[Union[str, date]], duration_minutes: Optional[int] = None) -> Dict[str, int]:
        """Fill dates that have no slots yet with the default working day."""
        minutes = duration_minutes or self.default_slot_minutes
        opened: Dict[str, int] = {}
        for value in dates:
            day = parse_iso_date(value)
            if self.slots.list_slots(doctor_id, day):
                continue
            template = generate_for_ranges(DEFAULT_WORKING_HOURS, minutes)
            self.slots.replace_range(doctor_id, day, "00:00", "23:59", template)
            opened[day.isoformat()] = len(template)
        return opened

    def upsert_slot(
        self,
        doctor_id: str,
        slot_date: Union[str, date],
        start_time: TimeLike,
        duration_minutes: int,
        slot_type: SlotType = SlotType.CONSULT,
        available: bool = True,
    ) -> TimeSlotDto:
        day = parse_iso_date(slot_date)
        start = format_hhmm(parse_hhmm(start_time))
        slot = TimeSlotDto(
            start_time=start,
            end_time=slot_end(start, duration_minutes),
            duration_minutes=duration_minutes,
            slot_type=SlotType(slot_type),
            available=available,
        )
        self._refuse_if_booked(doctor_id, day, start)
        others = [s for s in self.slots.list_slots(doctor_id, day) if s.start_time != start]
        ensure_ordered(others + [slot])
        self.slots.upsert_slot(doctor_id, day, slot)
        return slot

    def delete_slot(self, doctor_id: str, slot_date: Union[str, date], start_time: TimeLike) -> None:
        day = parse_iso_date(slot_date)
        start = format_hhmm(parse_hhmm(start_time))
        self._refuse_if_booked(doctor_id, day, start)
        if not self.slots.delete_slot(doctor_id, day, start):
            raise NotFoundError("Time slot not found", {"date": day.isoformat(), "start_time": start})

    def set_availability(self, doctor_id: str, slot_date: Union[str, date], start_time: TimeLike, available: bool) -> None:
        day = parse_iso_date(slot_date)
        start = format_hhmm(parse_hhmm(start_time))
        if available:
            # Reopening a held slot would allow a second live booking
            self._refuse_if_booked(doctor_id, day, start)
        if not self.slots.set_availability(doctor_id, day, start, available):
            raise NotFoundError("Time slot not found", {"date": day.isoformat(), "start_time": start})

    def _holding_between(self, doctor_id: str, day: date, lo: str, hi: str) -> List[AppointmentDto]:
        return [a for a in self.appointments.list_holding_for_doctor_date(doctor_id, day) if lo <= a.start_time < hi]

    def _refuse_if_booked(self, doctor_id: str, day: date, start: str) -> None:
        held = [a.id for a in self.appointments.list_holding_for_doctor_date(doctor_id, day) if a.start_time == start]
        if held:
            raise BookedSlotConflict(held)

    def _audit(self, action: str, actor: Optional[Actor], resource_id: str, success: bool, details: dict) -> None:
        if self.audit is not None:
            self.audit.log(action, actor.user_id if actor else None, resource_id, success, details)


def _around_held(new_slots: List[TimeSlotDto], current: List[TimeSlotDto], holders: List[AppointmentDto]) -> List[TimeSlotDto]:
    """Keep the slots the holders still sit on and drop new slots overlapping them."""
    starts = {a.start_time for a in holders}
    held = [s for s in current if s.start_time in starts]
    free = [
        s for s in new_slots
        if not any(s.start_time < h.end_time and h.start_time < s.end_time for h in held)
    ]
    return ensure_ordered(free + held)

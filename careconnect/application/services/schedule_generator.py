from datetime import date, datetime, time
from typing import Iterable, Iterator, List, Sequence, Tuple, Union

from ..ports.slots_repo import SlotType, TimeSlotDto
from ...exceptions import ValidationError

TimeLike = Union[str, time]

# Default working day used when a doctor opens a date without custom hours
DEFAULT_WORKING_HOURS: Tuple[Tuple[str, str], ...] = (("09:00", "12:00"), ("14:00", "17:00"))


def parse_hhmm(value: TimeLike) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM")


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def iter_slots(start: TimeLike, end: TimeLike, duration_minutes: int, slot_type: SlotType = SlotType.CONSULT) -> Iterator[TimeSlotDto]:
    """Yield consecutive slots of exactly ``duration_minutes`` between start and end.

    A trailing interval shorter than the duration is dropped. ``start >= end``
    yields nothing.
    """
    if duration_minutes <= 0:
        raise ValidationError("Slot duration must be a positive number of minutes")
    begin = _minutes(parse_hhmm(start))
    stop = _minutes(parse_hhmm(end))
    cursor = begin
    while cursor + duration_minutes <= stop:
        slot_start = time(cursor // 60, cursor % 60)
        slot_end_minutes = cursor + duration_minutes
        end_at = time(slot_end_minutes // 60, slot_end_minutes % 60)
        yield TimeSlotDto(
            start_time=format_hhmm(slot_start),
            end_time=format_hhmm(end_at),
            duration_minutes=duration_minutes,
            slot_type=SlotType(slot_type),
            available=True,
        )
        cursor = slot_end_minutes


def generate(start: TimeLike, end: TimeLike, duration_minutes: int, slot_type: SlotType = SlotType.CONSULT) -> List[TimeSlotDto]:
    return list(iter_slots(start, end, duration_minutes, slot_type))


def generate_for_ranges(ranges: Iterable[Tuple[TimeLike, TimeLike]], duration_minutes: int, slot_type: SlotType = SlotType.CONSULT) -> List[TimeSlotDto]:
    slots: List[TimeSlotDto] = []
    for start, end in ranges:
        slots.extend(iter_slots(start, end, duration_minutes, slot_type))
    return ensure_ordered(slots)


def ensure_ordered(slots: Sequence[TimeSlotDto]) -> List[TimeSlotDto]:
    """Sort slots by start time and reject overlaps."""
    ordered = sorted(slots, key=lambda s: s.start_time)
    for previous, current in zip(ordered, ordered[1:]):
        if current.start_time < previous.end_time:
            raise ValidationError(
                f"Slot {current.start_time}-{current.end_time} overlaps {previous.start_time}-{previous.end_time}"
            )
    return ordered


def slot_end(start: TimeLike, duration_minutes: int) -> str:
    end_minutes = _minutes(parse_hhmm(start)) + duration_minutes
    if duration_minutes <= 0 or end_minutes >= 24 * 60:
        raise ValidationError("Slot must start and end on the same day")
    return format_hhmm(time(end_minutes // 60, end_minutes % 60))


def parse_iso_date(value: Union[str, date]) -> date:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")

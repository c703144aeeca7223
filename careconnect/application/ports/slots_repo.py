from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Protocol
from datetime import date


class SlotType(str, Enum):
    CONSULT = "CONSULT"
    FOLLOW_UP = "FOLLOW_UP"
    PROCEDURE = "PROCEDURE"


@dataclass(frozen=True)
class TimeSlotDto:
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    duration_minutes: int
    slot_type: SlotType = SlotType.CONSULT
    available: bool = True

    def same_slot(self, other: "TimeSlotDto") -> bool:
        return (
            self.start_time == other.start_time
            and self.end_time == other.end_time
            and self.duration_minutes == other.duration_minutes
            and self.slot_type == other.slot_type
        )

    def with_availability(self, available: bool) -> "TimeSlotDto":
        return replace(self, available=available)


class SlotRepository(Protocol):
    def list_slots(self, doctor_id: str, slot_date: date) -> List[TimeSlotDto]:
        ...

    def list_available(self, doctor_id: str, slot_date: date) -> List[TimeSlotDto]:
        ...

    def get_slot(self, doctor_id: str, slot_date: date, start_time: str) -> Optional[TimeSlotDto]:
        ...

    def replace_range(self, doctor_id: str, slot_date: date, range_start: str, range_end: str, new_slots: List[TimeSlotDto]) -> None:
        ...

    def upsert_slot(self, doctor_id: str, slot_date: date, slot: TimeSlotDto) -> None:
        ...

    def delete_slot(self, doctor_id: str, slot_date: date, start_time: str) -> bool:
        ...

    def set_availability(self, doctor_id: str, slot_date: date, start_time: str, available: bool) -> bool:
        ...

import pytest

from careconnect.application.ports.slots_repo import SlotType, TimeSlotDto
from careconnect.application.services.schedule_generator import (
    DEFAULT_WORKING_HOURS,
    ensure_ordered,
    generate,
    generate_for_ranges,
    parse_iso_date,
    slot_end,
)
from careconnect.exceptions import ValidationError


def test_generate_morning_half_hour_slots():
    slots = generate("09:00", "12:00", 30)
    assert len(slots) == 6
    assert [s.start_time for s in slots] == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
    assert slots[-1].end_time == "12:00"
    assert all(s.available and s.slot_type == SlotType.CONSULT for s in slots)


def test_generate_drops_trailing_partial_slot():
    slots = generate("09:00", "10:10", 30)
    assert [s.end_time for s in slots] == ["09:30", "10:00"]


def test_generate_interval_shorter_than_duration_is_empty():
    assert generate("09:00", "09:20", 30) == []


def test_generate_start_not_before_end_is_empty():
    assert generate("12:00", "12:00", 15) == []
    assert generate("13:00", "12:00", 15) == []


def test_generate_rejects_non_positive_duration():
    with pytest.raises(ValidationError):
        generate("09:00", "12:00", 0)


def test_generate_rejects_bad_time():
    with pytest.raises(ValidationError):
        generate("9am", "12:00", 30)


def test_default_working_day_has_twelve_slots():
    slots = generate_for_ranges(DEFAULT_WORKING_HOURS, 30)
    assert len(slots) == 12
    assert slots[5].end_time == "12:00"
    assert slots[6].start_time == "14:00"


def test_ensure_ordered_sorts_and_rejects_overlap():
    a = TimeSlotDto("10:00", "10:30", 30)
    b = TimeSlotDto("09:00", "09:30", 30)
    assert ensure_ordered([a, b]) == [b, a]
    with pytest.raises(ValidationError):
        ensure_ordered([a, TimeSlotDto("10:15", "10:45", 30)])


def test_slot_end_stays_within_the_day():
    assert slot_end("09:45", 30) == "10:15"
    with pytest.raises(ValidationError):
        slot_end("23:45", 30)


def test_parse_iso_date_rejects_garbage():
    assert parse_iso_date("2024-06-10").day == 10
    with pytest.raises(ValidationError):
        parse_iso_date("10/06/2024")

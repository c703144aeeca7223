from dataclasses import dataclass

import pytest

from careconnect.application.ports.slots_repo import SlotType, TimeSlotDto
from careconnect.application.services.appointment_state_machine import AppointmentStateMachine
from careconnect.application.services.booking_service import BookingCoordinator
from careconnect.application.services.notification_dispatcher import NotificationDispatcher
from careconnect.application.services.reminder_scheduler import ReminderScheduler
from careconnect.application.services.schedule_service import ScheduleService
from careconnect.infrastructure.policy.role_policy import RolePolicyEngine

from fakes import (
    FakeAppointmentsRepo,
    FakeAudit,
    FakeDirectory,
    FakeGateway,
    FakePreferences,
    FakeReminderRepo,
    FakeSlotRepo,
    FakeTokens,
    FakeTriggerRepo,
    DAY,
    FixedClock,
    NOW,
)


@dataclass
class World:
    clock: FixedClock
    slots: FakeSlotRepo
    triggers: FakeTriggerRepo
    appointments: FakeAppointmentsRepo
    reminder_rows: FakeReminderRepo
    tokens: FakeTokens
    gateway: FakeGateway
    preferences: FakePreferences
    audit: FakeAudit
    reminders: ReminderScheduler
    state_machine: AppointmentStateMachine
    booking: BookingCoordinator
    schedules: ScheduleService
    dispatcher: NotificationDispatcher

    def open_slot(self, start="10:00", end="10:30", doctor_id="d1", slot_date=DAY) -> TimeSlotDto:
        minutes = (int(end[:2]) * 60 + int(end[3:])) - (int(start[:2]) * 60 + int(start[3:]))
        slot = TimeSlotDto(start_time=start, end_time=end, duration_minutes=minutes, slot_type=SlotType.CONSULT)
        self.slots.add(doctor_id, slot_date, slot)
        return slot


@pytest.fixture
def world() -> World:
    clock = FixedClock(NOW)
    slots = FakeSlotRepo()
    triggers = FakeTriggerRepo()
    appointments = FakeAppointmentsRepo(slots, triggers)
    reminder_rows = FakeReminderRepo()
    tokens = FakeTokens({"p1": "tok-p1", "d1": "tok-d1"})
    gateway = FakeGateway()
    preferences = FakePreferences()
    audit = FakeAudit()

    reminders = ReminderScheduler(
        reminders=reminder_rows,
        appointments=appointments,
        tokens=tokens,
        gateway=gateway,
        clock=clock,
        preferences=preferences,
    )
    state_machine = AppointmentStateMachine(
        appointments=appointments,
        reminders=reminders,
        clock=clock,
        audit=audit,
        policy=RolePolicyEngine(),
    )
    return World(
        clock=clock,
        slots=slots,
        triggers=triggers,
        appointments=appointments,
        reminder_rows=reminder_rows,
        tokens=tokens,
        gateway=gateway,
        preferences=preferences,
        audit=audit,
        reminders=reminders,
        state_machine=state_machine,
        booking=BookingCoordinator(slots, appointments, FakeDirectory(), clock, audit),
        schedules=ScheduleService(slots, appointments, state_machine, audit),
        dispatcher=NotificationDispatcher(
            triggers=triggers,
            appointments=appointments,
            tokens=tokens,
            gateway=gateway,
            reminders=reminders,
            clock=clock,
            preferences=preferences,
            max_retries=3,
        ),
    )

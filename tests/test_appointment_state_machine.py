from datetime import datetime

import pytest

from careconnect.application.ports.appointments_repo import AppointmentStatus
from careconnect.application.ports.policy import Actor
from careconnect.application.ports.reminders_repo import ReminderStatus
from careconnect.application.services.appointment_state_machine import can_transition, is_terminal
from careconnect.exceptions import InvalidTransition, NotFoundError, PermissionDenied, ValidationError

from fakes import DAY

DOCTOR = Actor(user_id="d1", role="doctor")
PATIENT = Actor(user_id="p1", role="patient")
STRANGER = Actor(user_id="p2", role="patient")


def _booked(world):
    return world.booking.book_slot("d1", DAY, world.open_slot(), "p1")


def test_transition_table():
    assert can_transition(AppointmentStatus.PENDING, AppointmentStatus.CONFIRM)
    assert can_transition(AppointmentStatus.CONFIRM, AppointmentStatus.NO_SHOW)
    assert not can_transition(AppointmentStatus.PENDING, AppointmentStatus.COMPLETED)
    assert not can_transition(AppointmentStatus.CANCELED, AppointmentStatus.CONFIRM)
    for status in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED, AppointmentStatus.NO_SHOW):
        assert is_terminal(status)


def test_each_transition_appends_exactly_one_trigger(world):
    appt = _booked(world)
    world.state_machine.confirm(appt.id, DOCTOR)
    done = world.state_machine.complete(appt.id, DOCTOR)

    assert done.status == AppointmentStatus.COMPLETED
    types = [t.type for t in world.triggers.list_for_appointment(appt.id)]
    assert types == ["PENDING", "CONFIRM", "COMPLETED"]


def test_illegal_transition_leaves_no_trigger(world):
    appt = _booked(world)
    with pytest.raises(InvalidTransition) as exc:
        world.state_machine.complete(appt.id, DOCTOR)
    assert exc.value.current == "PENDING"
    assert world.appointments.get_by_id(appt.id).status == AppointmentStatus.PENDING
    assert len(world.triggers.list_for_appointment(appt.id)) == 1


def test_terminal_status_refuses_further_moves(world):
    appt = _booked(world)
    world.state_machine.cancel(appt.id, PATIENT)
    with pytest.raises(InvalidTransition):
        world.state_machine.cancel(appt.id, PATIENT)
    with pytest.raises(InvalidTransition):
        world.state_machine.confirm(appt.id, DOCTOR)


def test_policy_checks_ownership_and_role(world):
    appt = _booked(world)
    with pytest.raises(PermissionDenied):
        world.state_machine.cancel(appt.id, STRANGER)
    with pytest.raises(PermissionDenied):
        world.state_machine.confirm(appt.id, PATIENT)
    assert world.state_machine.confirm(appt.id, DOCTOR).status == AppointmentStatus.CONFIRM
    assert world.state_machine.cancel(appt.id, PATIENT).status == AppointmentStatus.CANCELED


def test_lost_race_is_retried_against_fresh_status(world):
    appt = _booked(world)
    world.appointments.lose_next_transitions = 1
    updated = world.state_machine.confirm(appt.id, DOCTOR)
    assert updated.status == AppointmentStatus.CONFIRM
    assert [t.type for t in world.triggers.list_for_appointment(appt.id)] == ["PENDING", "CONFIRM"]


def test_persistent_race_gives_up(world):
    appt = _booked(world)
    world.appointments.lose_next_transitions = 10
    with pytest.raises(InvalidTransition):
        world.state_machine.confirm(appt.id, DOCTOR)


def test_unknown_appointment_and_status(world):
    with pytest.raises(NotFoundError):
        world.state_machine.confirm("missing")
    appt = _booked(world)
    with pytest.raises(ValidationError):
        world.state_machine.transition(appt.id, "RESCHEDULED")


def test_cancel_closes_scheduled_reminders(world):
    appt = _booked(world)
    confirmed = world.state_machine.confirm(appt.id, DOCTOR)
    world.reminders.schedule(confirmed)
    assert len(world.reminder_rows.list_scheduled_for_appointment(appt.id)) == 1

    world.state_machine.cancel(appt.id, DOCTOR)

    rows = list(world.reminder_rows.rows.values())
    assert rows[0].status == ReminderStatus.CANCELLED
    assert rows[0].reason == "appointment canceled"


def test_no_show_keeps_reminder_rows_for_fire_time_check(world):
    appt = _booked(world)
    confirmed = world.state_machine.confirm(appt.id, DOCTOR)
    world.reminders.schedule(confirmed)
    world.state_machine.mark_no_show(appt.id, DOCTOR)
    # Not eagerly cancelled; fire_due drops it because the status is no longer CONFIRM
    assert len(world.reminder_rows.list_scheduled_for_appointment(appt.id)) == 1
    world.clock.current = datetime(2024, 6, 9, 9, 30)
    summary = world.reminders.fire_due()
    assert summary.cancelled == 1 and summary.sent == 0
    assert list(world.reminder_rows.rows.values())[0].reason == "appointment status is NO_SHOW"


def test_cancel_after_dispatched_confirmation_sends_no_reminder(world):
    appt = _booked(world)
    world.state_machine.confirm(appt.id, DOCTOR)
    confirm_trigger = [t for t in world.triggers.list_for_appointment(appt.id) if t.type == "CONFIRM"][0]

    assert world.dispatcher.process(confirm_trigger.id) == "sent"
    scheduled = world.reminder_rows.list_scheduled_for_appointment(appt.id)
    assert [r.fire_at for r in scheduled] == [datetime(2024, 6, 9, 10, 0)]

    world.state_machine.cancel(appt.id, PATIENT)
    world.clock.current = datetime(2024, 6, 9, 9, 30)
    summary = world.reminders.fire_due()

    assert summary.sent == 0
    assert [data["type"] for _, _, _, data in world.gateway.sent] == ["CONFIRM"]

from dataclasses import replace
from datetime import datetime, timedelta

from careconnect.application.ports.appointments_repo import AppointmentStatus
from careconnect.application.ports.policy import Actor
from careconnect.application.ports.reminders_repo import ReminderStatus
from careconnect.application.services.reminder_scheduler import chunked

from fakes import DAY

DOCTOR = Actor(user_id="d1", role="doctor")


def _confirmed(world, start="10:00", end="10:30"):
    appt = world.booking.book_slot("d1", DAY, world.open_slot(start, end), "p1")
    return world.state_machine.confirm(appt.id, DOCTOR)


def _status(world):
    return [r.status for r in world.reminder_rows.rows.values()]


def test_schedule_uses_lead_time(world):
    appt = _confirmed(world)
    reminder = world.reminders.schedule(appt)
    assert reminder.fire_at == datetime(2024, 6, 9, 10, 0)

    custom = world.reminders.schedule(appt, lead_time=timedelta(hours=2))
    assert custom.fire_at == datetime(2024, 6, 10, 8, 0)
    assert len(world.reminder_rows.rows) == 2


def test_schedule_skips_when_fire_time_has_passed(world):
    appt = _confirmed(world)
    world.clock.current = datetime(2024, 6, 9, 11, 0)
    assert world.reminders.schedule(appt) is None
    assert world.reminder_rows.rows == {}


def test_schedule_is_idempotent(world):
    appt = _confirmed(world)
    world.reminders.schedule(appt)
    world.reminders.schedule(appt)
    assert len(world.reminder_rows.rows) == 1


def test_cancel_for_appointment(world):
    appt = _confirmed(world)
    world.reminders.schedule(appt)
    assert world.reminders.cancel_for_appointment(appt.id, reason="rescheduled") == 1
    assert world.reminders.cancel_for_appointment(appt.id) == 0
    assert _status(world) == [ReminderStatus.CANCELLED]


def test_fire_due_notifies_patient_and_doctor(world):
    appt = _confirmed(world)
    world.reminders.schedule(appt)
    world.clock.current = datetime(2024, 6, 9, 9, 30)

    summary = world.reminders.fire_due()

    assert summary.sent == 1
    recipients = sorted((t, d["recipientRole"]) for t, _, _, d in world.gateway.sent)
    assert recipients == [("tok-d1", "doctor"), ("tok-p1", "patient")]
    assert all(d["type"] == "REMINDER" for _, _, _, d in world.gateway.sent)
    assert _status(world) == [ReminderStatus.SENT]


def test_fire_due_ignores_reminders_outside_window(world):
    appt = _confirmed(world)
    world.reminders.schedule(appt)
    world.clock.current = datetime(2024, 6, 9, 8, 30)
    summary = world.reminders.fire_due()
    assert (summary.sent, summary.cancelled, summary.deferred) == (0, 0, 0)
    assert _status(world) == [ReminderStatus.SCHEDULED]


def test_fire_due_cancels_reminder_for_canceled_appointment(world):
    appt = _confirmed(world)
    world.reminders.schedule(appt)
    # Eager cancellation missed (e.g. crashed); the status check still catches it
    world.appointments.rows[appt.id] = replace(world.appointments.rows[appt.id], status=AppointmentStatus.CANCELED)
    world.clock.current = datetime(2024, 6, 9, 9, 30)

    summary = world.reminders.fire_due()

    assert summary.cancelled == 1
    assert world.gateway.sent == []
    assert list(world.reminder_rows.rows.values())[0].reason == "appointment status is CANCELED"


def test_fire_due_cancels_overdue_reminder_after_start(world):
    appt = _confirmed(world)
    world.reminders.schedule(appt)
    world.clock.current = datetime(2024, 6, 10, 11, 0)

    summary = world.reminders.fire_due()

    assert summary.cancelled == 1
    assert list(world.reminder_rows.rows.values())[0].reason == "appointment already started"


def test_fire_due_cancels_orphaned_reminder(world):
    appt = _confirmed(world)
    world.reminders.schedule(appt)
    del world.appointments.rows[appt.id]
    world.clock.current = datetime(2024, 6, 9, 9, 30)

    assert world.reminders.fire_due().cancelled == 1
    assert list(world.reminder_rows.rows.values())[0].reason == "not found"


def test_fire_due_defers_when_every_send_fails(world):
    appt = _confirmed(world)
    world.reminders.schedule(appt)
    world.gateway.fail_tokens = {"tok-p1": False, "tok-d1": False}
    world.clock.current = datetime(2024, 6, 9, 9, 30)

    summary = world.reminders.fire_due()

    assert summary.deferred == 1
    assert _status(world) == [ReminderStatus.SCHEDULED]


def test_fire_due_respects_preferences(world):
    appt = _confirmed(world)
    world.reminders.schedule(appt)
    prefs = world.preferences.get("p1")
    prefs.reminders = False
    world.preferences.save(prefs)
    world.clock.current = datetime(2024, 6, 9, 9, 30)

    assert world.reminders.fire_due().sent == 1
    assert [t for t, _, _, _ in world.gateway.sent] == ["tok-d1"]


def test_chunked():
    assert list(chunked(list(range(5)), 2)) == [[0, 1], [2, 3], [4]]

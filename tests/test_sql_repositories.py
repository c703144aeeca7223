from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
import threading

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine, select

from careconnect.application.ports.appointments_repo import AppointmentDraft, AppointmentStatus
from careconnect.application.ports.push import NotificationPreferences
from careconnect.application.ports.reminders_repo import ReminderStatus, ScheduledReminderDto
from careconnect.application.ports.slots_repo import SlotType, TimeSlotDto
from careconnect.application.services.appointment_state_machine import build_trigger
from careconnect.application.services.retention_cleaner import RetentionCleaner
from careconnect.application.services.schedule_generator import generate
from careconnect.database import create_db_and_tables
from careconnect.db.models import Appointment, Doctor, Patient, TimeSlot
from careconnect.exceptions import SlotUnavailable
from careconnect.infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from careconnect.infrastructure.persistence.sqlalchemy.repositories.directory_repository_sql import SqlDirectory
from careconnect.infrastructure.persistence.sqlalchemy.repositories.preferences_repository_sql import SqlPreferencesRepository
from careconnect.infrastructure.persistence.sqlalchemy.repositories.push_token_repository_sql import SqlPushTokenRegistry
from careconnect.infrastructure.persistence.sqlalchemy.repositories.reminders_repository_sql import SqlReminderRepository
from careconnect.infrastructure.persistence.sqlalchemy.repositories.slot_repository_sql import SqlSlotRepository
from careconnect.infrastructure.persistence.sqlalchemy.repositories.triggers_repository_sql import SqlTriggerRepository

from fakes import DAY, NOW, FixedClock

SLOT = TimeSlotDto("10:00", "10:30", 30)
DRAFT = AppointmentDraft(patient_id="p1", patient_name="Anna", doctor_name="Nowak", address="Main St 1")


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_db_and_tables(engine)
    return engine


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def _open_day(session):
    SqlSlotRepository(session).replace_range("d1", DAY, "09:00", "12:00", generate("09:00", "12:00", 30))


def test_slot_repository_roundtrip(session):
    repo = SqlSlotRepository(session)
    _open_day(session)
    assert len(repo.list_slots("d1", DAY)) == 6

    repo.upsert_slot("d1", DAY, TimeSlotDto("08:00", "08:45", 45, SlotType.PROCEDURE))
    slots = repo.list_slots("d1", DAY)
    assert slots[0].start_time == "08:00" and slots[0].slot_type == SlotType.PROCEDURE

    assert repo.set_availability("d1", DAY, "09:00", False)
    assert "09:00" not in [s.start_time for s in repo.list_available("d1", DAY)]
    assert repo.delete_slot("d1", DAY, "11:30")
    assert not repo.delete_slot("d1", DAY, "11:30")
    assert repo.get_slot("d1", DAY, "11:30") is None

    repo.replace_range("d1", DAY, "09:00", "12:00", [])
    assert [s.start_time for s in repo.list_slots("d1", DAY)] == ["08:00"]
    assert repo.list_slots("d1", date(2024, 6, 11)) == []


def test_claim_creates_appointment_and_pending_trigger(session):
    _open_day(session)
    appointments = SqlAppointmentsRepository(session)

    appt = appointments.create_with_slot_claim("d1", DAY, SLOT, DRAFT, NOW)

    assert appt.status == AppointmentStatus.PENDING
    assert appt.appointment_date == DAY
    assert not SqlSlotRepository(session).get_slot("d1", DAY, "10:00").available
    triggers = SqlTriggerRepository(session).list_for_appointment(appt.id)
    assert [(t.type, t.processed) for t in triggers] == [("PENDING", False)]
    assert triggers[0].appointment_date == "2024-06-10"


def test_second_claim_is_refused_without_side_effects(session):
    _open_day(session)
    appointments = SqlAppointmentsRepository(session)
    appointments.create_with_slot_claim("d1", DAY, SLOT, DRAFT, NOW)

    with pytest.raises(SlotUnavailable):
        appointments.create_with_slot_claim("d1", DAY, SLOT, DRAFT, NOW)
    with pytest.raises(SlotUnavailable):
        appointments.create_with_slot_claim("d1", DAY, TimeSlotDto("09:00", "09:45", 45), DRAFT, NOW)

    assert len(session.exec(select(Appointment)).all()) == 1
    assert len(SqlTriggerRepository(session).list_unprocessed(10)) == 1


def test_transition_is_compare_and_set(session):
    _open_day(session)
    appointments = SqlAppointmentsRepository(session)
    appt = appointments.create_with_slot_claim("d1", DAY, SLOT, DRAFT, NOW)

    confirmed = appointments.transition(
        appt.id, AppointmentStatus.PENDING, AppointmentStatus.CONFIRM, build_trigger(appt, AppointmentStatus.CONFIRM), NOW
    )
    assert confirmed.status == AppointmentStatus.CONFIRM

    stale = appointments.transition(
        appt.id, AppointmentStatus.PENDING, AppointmentStatus.CANCELED, build_trigger(appt, AppointmentStatus.CANCELED), NOW
    )
    assert stale is None
    types = [t.type for t in SqlTriggerRepository(session).list_for_appointment(appt.id)]
    assert types == ["PENDING", "CONFIRM"]
    assert [a.id for a in appointments.list_holding_for_doctor_date("d1", DAY)] == [appt.id]
    assert [a.id for a in appointments.list_for_patient("p1")] == [appt.id]
    assert [a.id for a in appointments.list_for_doctor("d1")] == [appt.id]


def test_only_canceled_appointments_release_their_slot(session):
    _open_day(session)
    appointments = SqlAppointmentsRepository(session)
    done = appointments.create_with_slot_claim("d1", DAY, SLOT, DRAFT, NOW)
    dropped = appointments.create_with_slot_claim("d1", DAY, TimeSlotDto("11:00", "11:30", 30), DRAFT, NOW)

    for status in (AppointmentStatus.CONFIRM, AppointmentStatus.COMPLETED):
        done = appointments.transition(done.id, done.status, status, build_trigger(done, status), NOW)
    appointments.transition(
        dropped.id, AppointmentStatus.PENDING, AppointmentStatus.CANCELED, build_trigger(dropped, AppointmentStatus.CANCELED), NOW
    )

    assert [a.id for a in appointments.list_holding_for_doctor_date("d1", DAY)] == [done.id]


def test_trigger_updates_only_apply_once(session):
    _open_day(session)
    appt = SqlAppointmentsRepository(session).create_with_slot_claim("d1", DAY, SLOT, DRAFT, NOW)
    triggers = SqlTriggerRepository(session)
    trigger = triggers.list_for_appointment(appt.id)[0]

    assert triggers.record_retry(trigger.id, "no token", NOW)
    assert triggers.record_retry(trigger.id, "no token", NOW)
    assert triggers.get(trigger.id).retry_count == 2

    assert triggers.mark_sent(trigger.id, "projects/x/messages/1", NOW)
    assert not triggers.mark_sent(trigger.id, "projects/x/messages/2", NOW)
    assert not triggers.mark_failed(trigger.id, "late", NOW)
    stored = triggers.get(trigger.id)
    assert stored.processed and stored.delivery_id == "projects/x/messages/1" and stored.error is None
    assert triggers.list_unprocessed(10) == []


def _reminder(fire_at):
    return ScheduledReminderDto(
        appointment_id="a1", appointment_date="2024-06-10", start_time="10:00",
        patient_id="p1", doctor_id="d1", patient_name="Anna", doctor_name="Nowak", fire_at=fire_at,
    )


def test_reminder_repository(session):
    repo = SqlReminderRepository(session)
    first = _reminder(datetime(2024, 6, 9, 10, 0))
    assert repo.add_if_absent(first, NOW)
    assert first.id is not None
    assert not repo.add_if_absent(_reminder(datetime(2024, 6, 9, 10, 0)), NOW)
    assert repo.add_if_absent(_reminder(datetime(2024, 6, 10, 8, 0)), NOW)

    due = repo.list_due(datetime(2024, 6, 9, 10, 30), 10)
    assert [r.id for r in due] == [first.id]
    assert repo.mark_sent([first.id], NOW) == 1
    assert repo.mark_cancelled([first.id], "late", NOW) == 0

    remaining = repo.list_scheduled_for_appointment("a1")
    assert len(remaining) == 1 and remaining[0].status == ReminderStatus.SCHEDULED


def test_retention_sweep_deletes_only_old_terminal_records(session):
    _open_day(session)
    appt = SqlAppointmentsRepository(session).create_with_slot_claim("d1", DAY, SLOT, DRAFT, NOW)
    triggers = SqlTriggerRepository(session)
    reminders = SqlReminderRepository(session)
    old = NOW - timedelta(days=10)

    processed = triggers.list_for_appointment(appt.id)[0]
    triggers.mark_sent(processed.id, "m1", old)
    fresh = SqlAppointmentsRepository(session).create_with_slot_claim(
        "d1", DAY, TimeSlotDto("09:00", "09:30", 30), DRAFT, NOW
    )

    stale = _reminder(datetime(2024, 5, 1, 10, 0))
    reminders.add_if_absent(stale, old)
    reminders.mark_sent([stale.id], old)
    pending = _reminder(datetime(2024, 6, 9, 10, 0))
    reminders.add_if_absent(pending, old)

    result = RetentionCleaner(triggers, reminders, FixedClock(NOW)).sweep()

    assert (result.triggers_deleted, result.reminders_deleted) == (1, 1)
    assert triggers.get(processed.id) is None
    assert len(triggers.list_for_appointment(fresh.id)) == 1
    assert [r.id for r in reminders.list_scheduled_for_appointment("a1")] == [pending.id]


def test_directory_tokens_and_preferences(session):
    session.add(Doctor(id="d1", name="Nowak", address="Main St 1", specialization="GP"))
    session.add(Patient(id="p1", name="Anna"))
    session.commit()

    directory = SqlDirectory(session)
    assert directory.get_doctor("d1").address == "Main St 1"
    assert directory.get_patient("p1").name == "Anna"
    assert directory.get_doctor("nope") is None

    tokens = SqlPushTokenRegistry(session)
    assert tokens.get_token("p1") is None
    tokens.register("p1", "tok-1")
    tokens.register("p1", "tok-2", device_id="pixel", platform="android")
    assert tokens.get_token("p1") == "tok-2"

    prefs = SqlPreferencesRepository(session)
    assert prefs.get("p1").allows("CONFIRM")
    prefs.save(NotificationPreferences(user_id="p1", reminders=False))
    assert not prefs.get("p1").allows("REMINDER")
    assert prefs.get("p1").allows("CANCELED")


def test_concurrent_bookings_claim_a_slot_once(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False, "timeout": 30}
    )
    create_db_and_tables(engine)
    with Session(engine) as session:
        _open_day(session)

    racers = 8
    barrier = threading.Barrier(racers)

    def attempt(i):
        with Session(engine) as session:
            draft = AppointmentDraft(patient_id=f"p{i}", patient_name=f"Patient {i}", doctor_name="Nowak")
            barrier.wait()
            try:
                SqlAppointmentsRepository(session).create_with_slot_claim("d1", DAY, SLOT, draft, NOW)
                return True
            except SlotUnavailable:
                return False

    with ThreadPoolExecutor(max_workers=racers) as pool:
        results = list(pool.map(attempt, range(racers)))

    assert results.count(True) == 1
    with Session(engine) as session:
        assert len(session.exec(select(Appointment)).all()) == 1
        slot = session.exec(select(TimeSlot).where(TimeSlot.start_time == "10:00")).one()
        assert slot.available is False
    engine.dispose()


def test_clinic_time_columns_store_naive_datetimes(session):
    for model in (Appointment, Doctor, Patient):
        for column in model.__table__.columns:
            if column.name.endswith("_at"):
                assert column.type.timezone is False

    appt = SqlAppointmentsRepository(session).create_with_slot_claim("d1", DAY, SLOT, DRAFT, NOW)
    session.expire_all()

    stored = session.get(Appointment, appt.id)
    assert stored.created_at == NOW and stored.created_at.tzinfo is None

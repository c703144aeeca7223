from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
import logging

from sqlmodel import Session

from .core.config import Settings, get_settings
from .application.ports.clock import Clock
from .application.ports.push import PushGateway
from .application.services.appointment_state_machine import AppointmentStateMachine
from .application.services.booking_service import BookingCoordinator
from .application.services.notification_dispatcher import NotificationDispatcher
from .application.services.reminder_scheduler import ReminderScheduler
from .application.services.retention_cleaner import RetentionCleaner
from .application.services.schedule_service import ScheduleService
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.clock.system_clock import SystemClock
from .infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from .infrastructure.persistence.sqlalchemy.repositories.directory_repository_sql import SqlDirectory
from .infrastructure.persistence.sqlalchemy.repositories.preferences_repository_sql import SqlPreferencesRepository
from .infrastructure.persistence.sqlalchemy.repositories.push_token_repository_sql import SqlPushTokenRegistry
from .infrastructure.persistence.sqlalchemy.repositories.reminders_repository_sql import SqlReminderRepository
from .infrastructure.persistence.sqlalchemy.repositories.slot_repository_sql import SqlSlotRepository
from .infrastructure.persistence.sqlalchemy.repositories.triggers_repository_sql import SqlTriggerRepository
from .infrastructure.policy.role_policy import RolePolicyEngine
from .infrastructure.push.logging_gateway import LoggingPushGateway

logger = logging.getLogger(__name__)


@lru_cache()
def get_push_gateway() -> PushGateway:
    """FCM when Firebase credentials are configured, otherwise log-only delivery."""
    settings = get_settings()
    if settings.firebase_configured:
        from .infrastructure.push.fcm_gateway import FcmPushGateway
        return FcmPushGateway()
    logger.warning("Firebase not configured; push notifications will only be logged")
    return LoggingPushGateway()


@lru_cache()
def get_clock() -> Clock:
    return SystemClock(get_settings().CLINIC_TIMEZONE)


@dataclass
class Services:
    """Services bound to one session; build one per request or per worker."""

    booking: BookingCoordinator
    schedules: ScheduleService
    state_machine: AppointmentStateMachine
    reminders: ReminderScheduler
    dispatcher: NotificationDispatcher
    retention: RetentionCleaner
    triggers: SqlTriggerRepository
    appointments: SqlAppointmentsRepository
    tokens: SqlPushTokenRegistry
    preferences: SqlPreferencesRepository


def build_services(session: Session, gateway: PushGateway = None, clock: Clock = None, settings: Settings = None) -> Services:
    settings = settings or get_settings()
    gateway = gateway or get_push_gateway()
    clock = clock or get_clock()
    audit = StdAuditLogger()

    slots = SqlSlotRepository(session)
    appointments = SqlAppointmentsRepository(session)
    triggers = SqlTriggerRepository(session)
    tokens = SqlPushTokenRegistry(session)
    preferences = SqlPreferencesRepository(session)

    reminders = ReminderScheduler(
        reminders=SqlReminderRepository(session),
        appointments=appointments,
        tokens=tokens,
        gateway=gateway,
        clock=clock,
        preferences=preferences,
        lead_time=timedelta(hours=settings.REMINDER_LEAD_HOURS),
        window=timedelta(minutes=settings.REMINDER_WINDOW_MINUTES),
        batch_size=settings.REMINDER_BATCH_SIZE,
    )
    state_machine = AppointmentStateMachine(
        appointments=appointments,
        reminders=reminders,
        clock=clock,
        audit=audit,
        policy=RolePolicyEngine(),
    )
    return Services(
        booking=BookingCoordinator(slots, appointments, SqlDirectory(session), clock, audit),
        schedules=ScheduleService(slots, appointments, state_machine, audit, settings.DEFAULT_SLOT_MINUTES),
        state_machine=state_machine,
        reminders=reminders,
        dispatcher=NotificationDispatcher(
            triggers=triggers,
            appointments=appointments,
            tokens=tokens,
            gateway=gateway,
            reminders=reminders,
            clock=clock,
            preferences=preferences,
            max_retries=settings.NOTIFICATION_MAX_RETRIES,
        ),
        retention=RetentionCleaner(
            triggers=triggers,
            reminders=reminders.reminders,
            clock=clock,
            retention=timedelta(days=settings.RETENTION_DAYS),
            batch_limit=settings.RETENTION_BATCH_LIMIT,
        ),
        triggers=triggers,
        appointments=appointments,
        tokens=tokens,
        preferences=preferences,
    )

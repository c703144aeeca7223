from datetime import datetime
from sqlmodel import Session, select

from .....db.models import NotificationPreference
from .....application.ports.push import NotificationPreferences, PreferencesRepository


class SqlPreferencesRepository(PreferencesRepository):
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> NotificationPreferences:
        row = self.session.exec(select(NotificationPreference).where(NotificationPreference.user_id == user_id)).first()
        if not row:
            return NotificationPreferences(user_id=user_id)
        return NotificationPreferences(
            user_id=row.user_id,
            enabled=row.enabled,
            confirmations=row.confirmations,
            reminders=row.reminders,
            cancellations=row.cancellations,
            completions=row.completions,
        )

    def save(self, preferences: NotificationPreferences) -> NotificationPreferences:
        try:
            row = self.session.exec(
                select(NotificationPreference).where(NotificationPreference.user_id == preferences.user_id)
            ).first()
            if row is None:
                row = NotificationPreference(user_id=preferences.user_id)
            row.enabled = preferences.enabled
            row.confirmations = preferences.confirmations
            row.reminders = preferences.reminders
            row.cancellations = preferences.cancellations
            row.completions = preferences.completions
            row.updated_at = datetime.utcnow()
            self.session.add(row)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return preferences

# careconnect/db/models/notifications/preference.py
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

class NotificationPreference(SQLModel, table=True):
    __tablename__ = "notification_preferences"
    user_id: str = Field(primary_key=True)
    enabled: bool = Field(default=True)
    confirmations: bool = Field(default=True)
    reminders: bool = Field(default=True)
    cancellations: bool = Field(default=True)
    completions: bool = Field(default=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime(timezone=False))

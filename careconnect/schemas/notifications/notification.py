# careconnect/schemas/notifications/notification.py
from pydantic import BaseModel, Field
from typing import Optional


class PushTokenRequest(BaseModel):
    token: str = Field(min_length=1)
    device_id: str = ""
    platform: str = "android"


class NotificationPreferencesSchema(BaseModel):
    enabled: bool = True
    confirmations: bool = True
    reminders: bool = True
    cancellations: bool = True
    completions: bool = True


class NotificationPreferencesUpdate(BaseModel):
    enabled: Optional[bool] = None
    confirmations: Optional[bool] = None
    reminders: Optional[bool] = None
    cancellations: Optional[bool] = None
    completions: Optional[bool] = None

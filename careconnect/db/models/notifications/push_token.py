# careconnect/db/models/notifications/push_token.py
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

class PushToken(SQLModel, table=True):
    __tablename__ = "push_tokens"
    user_id: str = Field(primary_key=True)
    token: str
    device_id: str = Field(default="")
    platform: str = Field(default="android")
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime(timezone=False))

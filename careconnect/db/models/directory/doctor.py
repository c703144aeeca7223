# careconnect/db/models/directory/doctor.py
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: str = Field(primary_key=True)
    name: str
    specialization: str = Field(default="")
    address: str = Field(default="")
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime(timezone=False))

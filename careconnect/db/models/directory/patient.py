# careconnect/db/models/directory/patient.py
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

class Patient(SQLModel, table=True):
    __tablename__ = "patients"
    id: str = Field(primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime(timezone=False))

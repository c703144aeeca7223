from typing import Optional
from sqlmodel import Session, select

from .....db.models import Doctor, Patient
from .....application.ports.directory import Directory, DoctorProfile, PatientProfile


class SqlDirectory(Directory):
    def __init__(self, session: Session):
        self.session = session

    def get_doctor(self, doctor_id: str) -> Optional[DoctorProfile]:
        d = self.session.exec(select(Doctor).where(Doctor.id == doctor_id)).first()
        if not d:
            return None
        return DoctorProfile(id=d.id, name=d.name, address=d.address, specialization=d.specialization)

    def get_patient(self, patient_id: str) -> Optional[PatientProfile]:
        p = self.session.exec(select(Patient).where(Patient.id == patient_id)).first()
        return PatientProfile(id=p.id, name=p.name) if p else None

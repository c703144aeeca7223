from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class DoctorProfile:
    id: str
    name: str
    address: str
    specialization: str


@dataclass
class PatientProfile:
    id: str
    name: str


class Directory(Protocol):
    def get_doctor(self, doctor_id: str) -> Optional[DoctorProfile]:
        ...

    def get_patient(self, patient_id: str) -> Optional[PatientProfile]:
        ...

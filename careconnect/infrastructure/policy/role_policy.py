from typing import Any

from ...application.ports.appointments_repo import AppointmentDto
from ...application.ports.policy import Actor, PolicyEngine

ADMIN = "admin"
DOCTOR = "doctor"
PATIENT = "patient"

DOCTOR_ONLY_TRANSITIONS = {"appointment:CONFIRM", "appointment:COMPLETED", "appointment:NO_SHOW"}


class RolePolicyEngine(PolicyEngine):
    """Role and ownership rules for scheduling actions.

    ``resource`` is an AppointmentDto for appointment actions, a patient id for
    ``appointment:book`` and a doctor id for ``schedule:*`` actions.
    """

    def authorize(self, actor: Actor, action: str, resource: Any) -> bool:
        if actor.role == ADMIN:
            return True

        if action == "appointment:book":
            return actor.role == PATIENT and resource == actor.user_id

        if action == "schedule:write":
            return actor.role == DOCTOR and resource == actor.user_id

        if isinstance(resource, AppointmentDto):
            is_patient = actor.role == PATIENT and resource.patient_id == actor.user_id
            is_doctor = actor.role == DOCTOR and resource.doctor_id == actor.user_id
            if action == "appointment:read":
                return is_patient or is_doctor
            if action == "appointment:CANCELED":
                return is_patient or is_doctor
            if action in DOCTOR_ONLY_TRANSITIONS:
                return is_doctor

        return False

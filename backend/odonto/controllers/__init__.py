# Controllers package initialization
# One Blueprint per resource; create_app() registers them all.

from . import (
    appointment_controller,
    auth_controller,
    doctor_controller,
    lesion_controller,
    odontogram_controller,
    patient_controller,
    treatment_controller,
)

__all__ = [
    "appointment_controller",
    "auth_controller",
    "doctor_controller",
    "lesion_controller",
    "odontogram_controller",
    "patient_controller",
    "treatment_controller",
]

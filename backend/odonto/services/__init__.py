# Services package initialization
# Application services: one per resource, each built from repositories
# by the controllers.

from . import appointment_service
from . import auth_service
from . import doctor_service
from . import lesion_service
from . import odontogram_service
from . import patient_service
from . import treatment_service

__all__ = [
    "appointment_service",
    "auth_service",
    "doctor_service",
    "lesion_service",
    "odontogram_service",
    "patient_service",
    "treatment_service",
]

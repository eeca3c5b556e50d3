"""
Domain package - Pure business logic layer.

This package contains:
- value_objects.py: immutable validated values (names, money, slots, teeth)
- entities.py: domain entities with business logic
- specifications.py: composable predicates used by queries
- interfaces.py: repository contracts
- services.py: rules spanning several entities (overlap, availability)
"""

from .entities import (
    Appointment,
    Doctor,
    Lesion,
    Odontogram,
    Patient,
    Treatment,
    User,
)
from .interfaces import (
    IAppointmentRepository,
    IDoctorRepository,
    ILesionRepository,
    IOdontogramRepository,
    IPatientRepository,
    ITreatmentRepository,
    IUserRepository,
)

__all__ = [
    # Domain entities
    "Appointment",
    "Doctor",
    "Lesion",
    "Odontogram",
    "Patient",
    "Treatment",
    "User",
    # Repository interfaces
    "IAppointmentRepository",
    "IDoctorRepository",
    "ILesionRepository",
    "IOdontogramRepository",
    "IPatientRepository",
    "ITreatmentRepository",
    "IUserRepository",
]

"""
Abstract interfaces for repositories following Interface Segregation Principle.

These interfaces define contracts without implementation details,
enabling dependency injection and easier testing.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from .entities import Appointment, Doctor, Lesion, Odontogram, Patient, Treatment, User


class IUserReader(ABC):
    @abstractmethod
    def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        pass

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        pass


class IUserWriter(ABC):
    @abstractmethod
    def create(self, user: User) -> User:
        """Create a new user."""
        pass


class IUserRepository(IUserReader, IUserWriter):
    pass


class IPatientReader(ABC):
    """Interface for patient read operations."""

    @abstractmethod
    def get_by_id(self, patient_id: str) -> Optional[Patient]:
        pass

    @abstractmethod
    def get_all(self) -> List[Patient]:
        """All patients ordered by last and first names."""
        pass

    @abstractmethod
    def exists(self, patient_id: str) -> bool:
        pass


class IPatientWriter(ABC):
    """Interface for patient write operations."""

    @abstractmethod
    def create(self, patient: Patient) -> Patient:
        pass

    @abstractmethod
    def update(self, patient: Patient) -> Patient:
        pass

    @abstractmethod
    def delete(self, patient_id: str) -> bool:
        """Delete a patient. Returns False when it did not exist."""
        pass


class IPatientRepository(IPatientReader, IPatientWriter):
    """Complete patient repository interface combining read/write operations."""

    pass


class IDoctorReader(ABC):
    @abstractmethod
    def get_by_id(self, doctor_id: str) -> Optional[Doctor]:
        pass

    @abstractmethod
    def get_all(self) -> List[Doctor]:
        pass

    @abstractmethod
    def get_by_specialty(self, specialty: str) -> List[Doctor]:
        """Case-insensitive exact match on specialty."""
        pass

    @abstractmethod
    def exists(self, doctor_id: str) -> bool:
        pass


class IDoctorWriter(ABC):
    @abstractmethod
    def create(self, doctor: Doctor) -> Doctor:
        pass

    @abstractmethod
    def update(self, doctor: Doctor) -> Doctor:
        pass

    @abstractmethod
    def delete(self, doctor_id: str) -> bool:
        pass


class IDoctorRepository(IDoctorReader, IDoctorWriter):
    pass


class IAppointmentReader(ABC):
    """Interface for appointment read operations."""

    @abstractmethod
    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        pass

    @abstractmethod
    def get_all(self) -> List[Appointment]:
        pass

    @abstractmethod
    def get_by_doctor_and_date(self, doctor_id: str, on: date) -> List[Appointment]:
        pass

    @abstractmethod
    def get_by_doctor_and_date_range(
        self, doctor_id: str, start: date, end: date
    ) -> List[Appointment]:
        pass

    @abstractmethod
    def get_by_patient_and_date_range(
        self, patient_id: str, start: date, end: date
    ) -> List[Appointment]:
        pass


class IAppointmentWriter(ABC):
    """Interface for appointment write operations."""

    @abstractmethod
    def create(self, appointment: Appointment) -> Appointment:
        pass

    @abstractmethod
    def update(self, appointment: Appointment) -> Appointment:
        pass

    @abstractmethod
    def delete(self, appointment_id: str) -> bool:
        pass


class IAppointmentRepository(IAppointmentReader, IAppointmentWriter):
    """Complete appointment repository interface."""

    pass


class ITreatmentReader(ABC):
    @abstractmethod
    def get_by_id(self, treatment_id: str) -> Optional[Treatment]:
        pass

    @abstractmethod
    def get_all(self) -> List[Treatment]:
        pass

    @abstractmethod
    def get_by_category(self, category: str) -> List[Treatment]:
        pass


class ITreatmentWriter(ABC):
    @abstractmethod
    def create(self, treatment: Treatment) -> Treatment:
        pass

    @abstractmethod
    def update(self, treatment: Treatment) -> Treatment:
        pass

    @abstractmethod
    def delete(self, treatment_id: str) -> bool:
        pass


class ITreatmentRepository(ITreatmentReader, ITreatmentWriter):
    pass


class ILesionReader(ABC):
    @abstractmethod
    def get_by_id(self, lesion_id: str) -> Optional[Lesion]:
        pass

    @abstractmethod
    def get_all(self) -> List[Lesion]:
        pass

    @abstractmethod
    def get_by_category(self, category: str) -> List[Lesion]:
        pass

    @abstractmethod
    def get_active(self) -> List[Lesion]:
        pass

    @abstractmethod
    def get_categories(self) -> List[str]:
        """Distinct non-empty categories, sorted."""
        pass


class ILesionWriter(ABC):
    @abstractmethod
    def create(self, lesion: Lesion) -> Lesion:
        pass

    @abstractmethod
    def update(self, lesion: Lesion) -> Lesion:
        pass

    @abstractmethod
    def delete(self, lesion_id: str) -> bool:
        pass


class ILesionRepository(ILesionReader, ILesionWriter):
    pass


class IOdontogramReader(ABC):
    @abstractmethod
    def get_by_id(self, odontogram_id: str) -> Optional[Odontogram]:
        pass

    @abstractmethod
    def get_by_patient_id(self, patient_id: str) -> Optional[Odontogram]:
        pass


class IOdontogramWriter(ABC):
    @abstractmethod
    def create(self, odontogram: Odontogram) -> Odontogram:
        pass

    @abstractmethod
    def update(self, odontogram: Odontogram) -> Odontogram:
        pass


class IOdontogramRepository(IOdontogramReader, IOdontogramWriter):
    pass

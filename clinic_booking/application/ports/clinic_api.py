from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from clinic_booking.domain.entities.appointment import Appointment, AppointmentHistoryEntry
from clinic_booking.domain.entities.catalog import Doctor, Service, Specialty
from clinic_booking.domain.entities.work_shift import WorkShift


class ClinicApiPort(ABC):
    @abstractmethod
    async def list_specialties(self) -> list[Specialty]:
        raise NotImplementedError

    @abstractmethod
    async def list_doctors(self) -> list[Doctor]:
        """All doctors, each carrying its specialty id."""
        raise NotImplementedError

    @abstractmethod
    async def list_doctors_by_specialty(self, specialty_id: int) -> list[Doctor]:
        raise NotImplementedError

    @abstractmethod
    async def list_services(self) -> list[Service]:
        raise NotImplementedError

    @abstractmethod
    async def list_work_shifts(self, doctor_id: int) -> list[WorkShift]:
        """Every registered shift of the doctor. Requires a bearer token."""
        raise NotImplementedError

    @abstractmethod
    async def list_available_slots(self, doctor_id: int, day: date) -> list[str]:
        """Bookable HH:MM slots as computed by the server."""
        raise NotImplementedError

    @abstractmethod
    async def create_appointment(
        self,
        doctor_id: int,
        day: date,
        time: str,
        service_id: int | None = None,
        notes: str | None = None,
    ) -> int:
        """Create appointment. Returns appointment_id."""
        raise NotImplementedError

    @abstractmethod
    async def get_appointment(self, appointment_id: int) -> Appointment:
        raise NotImplementedError

    @abstractmethod
    async def list_my_appointments(self) -> list[Appointment]:
        raise NotImplementedError

    @abstractmethod
    async def reschedule_appointment(
        self,
        appointment_id: int,
        doctor_id: int,
        day: date,
        time: str,
        reason: str | None = None,
    ) -> str | None:
        """Move appointment. Returns the server's confirmation message, if any."""
        raise NotImplementedError

    @abstractmethod
    async def cancel_appointment(self, appointment_id: int) -> str | None:
        """Cancel appointment. Returns the server's confirmation message, if any."""
        raise NotImplementedError

    @abstractmethod
    async def get_appointment_history(self, appointment_id: int) -> list[AppointmentHistoryEntry]:
        raise NotImplementedError

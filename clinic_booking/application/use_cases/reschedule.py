from __future__ import annotations

from datetime import datetime
from typing import Callable

from clinic_booking.application.exceptions import AppointmentNotEditableError
from clinic_booking.application.ports.clinic_api import ClinicApiPort
from clinic_booking.application.use_cases.booking import BookingResult, BookingWizard
from clinic_booking.application.use_cases.catalog import CatalogLoader, filter_doctors
from clinic_booking.application.use_cases.slot_resolver import ShiftSlotResolver
from clinic_booking.domain.entities.appointment import Appointment, AppointmentStatus
from clinic_booking.domain.entities.booking_state import BookingSelection, FlowVariant, WizardStep
from clinic_booking.domain.entities.catalog import Doctor

DEFAULT_REASON = "Bệnh nhân yêu cầu đổi lịch"


class RescheduleController(BookingWizard):
    """
    Moves an existing appointment. Starts pre-filled with the appointment's
    doctor/date/time and submits a reschedule for the same id.

    The appointment's own slot is usually reported as booked by the slots
    endpoint, so the original (doctor, date, time) stays selectable even when
    it is missing from the resolved list.
    """

    generic_failure = "Không thể đổi lịch"
    success_action = "rescheduled"
    keep_date_on_doctor_change = True

    def __init__(
        self,
        api: ClinicApiPort,
        catalog: CatalogLoader,
        resolver: ShiftSlotResolver,
        now: Callable[[], datetime],
        appointment_id: int,
    ) -> None:
        super().__init__(api, catalog, resolver, now, variant=FlowVariant.DOCTOR_DATE)
        self.appointment_id = appointment_id
        self.original: Appointment | None = None
        self.reason: str | None = None
        self._all_doctors: list[Doctor] = []

    async def open(self) -> Appointment:
        """Load the appointment and pre-fill the form. API errors propagate: there is nothing to show without it."""
        appointment = await self._api.get_appointment(self.appointment_id)
        # the backend only moves Scheduled appointments
        if appointment.status != AppointmentStatus.SCHEDULED:
            raise AppointmentNotEditableError(
                f"Không thể đổi lịch hẹn có trạng thái '{appointment.status.label}'"
            )

        await self._catalog.load_specialties()
        self._all_doctors = await self._catalog.load_doctors()
        self.doctors = list(self._all_doctors)

        self.original = appointment
        self.selection = BookingSelection(
            doctor_id=appointment.doctor_id,
            date=appointment.date,
            time=appointment.time,
        )
        self.step = WizardStep.CONFIRM
        await self._resolve(appointment.doctor_id, appointment.date)
        self.upcoming_shifts = await self._resolver.upcoming_shifts(appointment.doctor_id)
        return appointment

    async def submit(self, reason: str | None = None) -> BookingResult:
        if not self.is_locked:
            self.reason = (reason or "").strip() or None
        return await super().submit()

    async def _send(self, selection: BookingSelection) -> int:
        await self._api.reschedule_appointment(
            appointment_id=self.appointment_id,
            doctor_id=selection.doctor_id,
            day=selection.date,
            time=selection.time,
            reason=self.reason or DEFAULT_REASON,
        )
        return self.appointment_id

    async def _doctors_for(self, specialty_id: int | None) -> list[Doctor]:
        return filter_doctors(self._all_doctors, specialty_id)

    async def _reload_doctors(self) -> None:
        self._all_doctors = await self._catalog.load_doctors()
        self.doctors = filter_doctors(self._all_doctors, self.selection.specialty_id)

    def _is_offered(self, slot: str) -> bool:
        return super()._is_offered(slot) or self._is_original(slot)

    def _is_original(self, slot: str) -> bool:
        o = self.original
        if o is None:
            return False
        return (
            self.selection.doctor_id == o.doctor_id
            and self.selection.date == o.date
            and slot == o.time
        )

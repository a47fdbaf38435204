from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable

from clinic_booking.application.exceptions import ClinicApiError, ClinicApiRejectedError, InvalidSelectionError
from clinic_booking.application.ports.clinic_api import ClinicApiPort
from clinic_booking.application.use_cases.catalog import CatalogLoader
from clinic_booking.application.use_cases.slot_resolver import ShiftSlotResolver
from clinic_booking.application.utils.time_slots import normalize_time_string, parse_iso_date
from clinic_booking.domain.entities.booking_state import BookingSelection, FlowVariant, WizardStep
from clinic_booking.domain.entities.catalog import Doctor
from clinic_booking.domain.entities.slot_resolution import SlotResolution, SlotStatus
from clinic_booking.domain.entities.work_shift import WorkShift

_STEP_ORDER = (WizardStep.SELECT_DOCTOR, WizardStep.SELECT_DATE_TIME, WizardStep.CONFIRM)


@dataclass(frozen=True)
class BookingResult:
    action: str  # "booked", "rescheduled", "failed", "ignored"
    step: WizardStep
    message: str | None = None
    appointment_id: int | None = None
    navigate_to: str | None = None


class BookingWizard:
    """
    Three-step booking: doctor → date/time → confirm → submit.

    Forward moves are gated on the current step's required selections; back
    moves keep everything. Submission happens once: the step switches to
    SUBMITTING before the request goes out, so a second submit() issued
    while the first is in flight is ignored.
    """

    generic_failure = "Đặt lịch thất bại"
    success_action = "booked"
    keep_date_on_doctor_change = False

    def __init__(
        self,
        api: ClinicApiPort,
        catalog: CatalogLoader,
        resolver: ShiftSlotResolver,
        now: Callable[[], datetime],
        variant: FlowVariant = FlowVariant.DOCTOR_DATE,
    ) -> None:
        self._api = api
        self._catalog = catalog
        self._resolver = resolver
        self._now = now
        self.variant = variant
        self.step = WizardStep.SELECT_DOCTOR
        self.selection = BookingSelection()
        self.doctors: list[Doctor] = []
        self.upcoming_shifts: list[WorkShift] = []
        self.error: str | None = None
        self.appointment_id: int | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def catalog(self) -> CatalogLoader:
        return self._catalog

    @property
    def slots(self) -> SlotResolution:
        return self._resolver.current

    @property
    def is_locked(self) -> bool:
        return self.step in (WizardStep.SUBMITTING, WizardStep.SUCCESS)

    @property
    def upcoming_error(self) -> str | None:
        return self._resolver.upcoming_error

    async def start(self) -> None:
        await self._catalog.load_specialties()
        self.doctors = await self._catalog.load_doctors()
        await self._catalog.load_services()

    async def retry_failed_loads(self) -> None:
        """Reload whatever failed earlier: catalogs and the doctor's upcoming shifts."""
        self._ensure_editable()
        if self._catalog.has_error("specialties"):
            await self._catalog.load_specialties()
        if self._catalog.has_error("doctors"):
            await self._reload_doctors()
        if self._catalog.has_error("services"):
            await self._catalog.load_services()

        doctor_id = self.selection.doctor_id
        if doctor_id and self._resolver.upcoming_error:
            shifts = await self._resolver.upcoming_shifts(doctor_id)
            if self.selection.doctor_id == doctor_id:
                self.upcoming_shifts = shifts

    async def select_specialty(self, specialty_id: int | None) -> None:
        self._ensure_editable()
        if specialty_id is not None:
            _require_id(specialty_id, "specialty")
        self.selection = replace(self.selection, specialty_id=specialty_id)

        doctors = await self._doctors_for(specialty_id)
        if self.is_locked or self.selection.specialty_id != specialty_id:
            return  # a newer choice or a submission overtook this one
        self.doctors = doctors

        if self.selection.doctor_id and not any(d.id == self.selection.doctor_id for d in doctors):
            self._clear_doctor()
        self._reconcile_step()

    async def select_doctor(self, doctor_id: int) -> None:
        self._ensure_editable()
        _require_id(doctor_id, "doctor")
        if self.doctors and not any(d.id == doctor_id for d in self.doctors):
            raise InvalidSelectionError(f"Doctor {doctor_id} is not offered for this selection")
        if doctor_id == self.selection.doctor_id:
            return

        kept_date = self.selection.date if self.keep_date_on_doctor_change else None
        self.selection = replace(self.selection, doctor_id=doctor_id, date=kept_date, time=None)
        self.upcoming_shifts = []
        self._resolver.reset()
        self._reconcile_step()

        if kept_date is not None:
            await self._resolve(doctor_id, kept_date)

        shifts = await self._resolver.upcoming_shifts(doctor_id)
        if self.selection.doctor_id == doctor_id:
            self.upcoming_shifts = shifts

    async def select_service(self, service_id: int | None) -> None:
        self._ensure_editable()
        if service_id is not None:
            _require_id(service_id, "service")
            if self._catalog.services and not any(s.id == service_id for s in self._catalog.services):
                raise InvalidSelectionError(f"Service {service_id} is not offered")
        self.selection = replace(self.selection, service_id=service_id)
        self._reconcile_step()

    async def select_date(self, day: date | str) -> SlotResolution:
        self._ensure_editable()
        parsed = parse_iso_date(day)
        if parsed is None:
            raise InvalidSelectionError(f"Invalid date: {day!r}")
        if not self.selection.doctor_id:
            raise InvalidSelectionError("Vui lòng chọn bác sĩ trước")
        if parsed < self._now().date():
            raise InvalidSelectionError("Không thể đặt lịch cho ngày đã qua")

        self.selection = replace(self.selection, date=parsed, time=None)
        self._reconcile_step()
        return await self._resolve(self.selection.doctor_id, parsed)

    def select_time(self, slot: str) -> None:
        self._ensure_editable()
        if not (self.selection.doctor_id and self.selection.date):
            raise InvalidSelectionError("Vui lòng chọn bác sĩ và ngày khám trước")
        normalized = normalize_time_string(slot) if isinstance(slot, str) else None
        if normalized is None or not self._is_offered(normalized):
            raise InvalidSelectionError(f"Khung giờ {slot!r} không có trong danh sách lịch trống")
        self.selection = replace(self.selection, time=normalized)
        self._reconcile_step()

    def set_notes(self, notes: str | None) -> None:
        self._ensure_editable()
        self.selection = replace(self.selection, notes=(notes or "").strip() or None)

    def advance(self) -> bool:
        if self.step == WizardStep.SELECT_DOCTOR and self._step_one_ready():
            self.step = WizardStep.SELECT_DATE_TIME
            return True
        if self.step == WizardStep.SELECT_DATE_TIME and self._step_one_ready() and self._step_two_ready():
            self.step = WizardStep.CONFIRM
            return True
        return False

    def back(self) -> bool:
        if self.is_locked or self.step == WizardStep.SELECT_DOCTOR:
            return False
        self.step = _STEP_ORDER[_STEP_ORDER.index(self.step) - 1]
        return True

    async def submit(self) -> BookingResult:
        if self.step != WizardStep.CONFIRM or not self.selection.is_complete:
            self._logger.info("Ignoring submit", extra={"step": self.step.value})
            return BookingResult(action="ignored", step=self.step, message=self.error)

        self.step = WizardStep.SUBMITTING
        self.error = None
        selection = self.selection

        try:
            appointment_id = await self._send(selection)
        except ClinicApiError as e:
            self.error = self._failure_message(e)
            self._logger.warning(
                "Submission failed",
                extra={"doctor_id": selection.doctor_id, "status": e.status_code, "reason": self.error},
            )
            # still SUBMITTING: no retry until the fresh slots are in
            try:
                await self._refresh_after_failure()
            finally:
                self.step = WizardStep.CONFIRM
                self._reconcile_step()
            return BookingResult(action="failed", step=self.step, message=self.error)

        self.appointment_id = appointment_id
        self.step = WizardStep.SUCCESS
        self._logger.info(
            "Submission succeeded",
            extra={"appointment_id": appointment_id, "doctor_id": selection.doctor_id, "date": selection.date.isoformat()},
        )
        return BookingResult(
            action=self.success_action,
            step=self.step,
            appointment_id=appointment_id,
            navigate_to=f"/patient/appointments/{appointment_id}",
        )

    async def _send(self, selection: BookingSelection) -> int:
        return await self._api.create_appointment(
            doctor_id=selection.doctor_id,
            day=selection.date,
            time=selection.time,
            service_id=selection.service_id,
            notes=selection.notes,
        )

    async def _doctors_for(self, specialty_id: int | None) -> list[Doctor]:
        return await self._catalog.load_doctors(specialty_id)

    async def _reload_doctors(self) -> None:
        specialty_id = self.selection.specialty_id
        doctors = await self._doctors_for(specialty_id)
        if self.selection.specialty_id == specialty_id:
            self.doctors = doctors

    def _is_offered(self, slot: str) -> bool:
        current = self._resolver.current
        return current.matches(self.selection.doctor_id, self.selection.date) and current.offers(slot)

    async def _resolve(self, doctor_id: int, day: date) -> SlotResolution:
        resolution = await self._resolver.resolve(doctor_id, day)
        if not resolution.superseded:
            self._reconcile_step()
        return resolution

    async def _refresh_after_failure(self) -> None:
        """The slot may have been taken meanwhile: fetch fresh slots, drop the time if it is gone."""
        doctor_id, day, slot = self.selection.doctor_id, self.selection.date, self.selection.time
        resolution = await self._resolver.resolve(doctor_id, day)
        if resolution.superseded or resolution.status == SlotStatus.ERROR:
            return
        if self.selection.time == slot and not self._is_offered(slot):
            self.selection = replace(self.selection, time=None)

    def _failure_message(self, error: ClinicApiError) -> str:
        if isinstance(error, ClinicApiRejectedError) and error.server_message:
            return error.server_message
        return self.generic_failure

    def _clear_doctor(self) -> None:
        kept_date = self.selection.date if self.keep_date_on_doctor_change else None
        self.selection = replace(self.selection, doctor_id=None, date=kept_date, time=None)
        self.upcoming_shifts = []
        self._resolver.reset()

    def _step_one_ready(self) -> bool:
        s = self.selection
        if self.variant == FlowVariant.SPECIALTY_DOCTOR_SERVICE:
            return bool(s.specialty_id and s.doctor_id and s.service_id)
        return bool(s.doctor_id and s.date)

    def _step_two_ready(self) -> bool:
        return bool(self.selection.date and self.selection.time)

    def _reconcile_step(self) -> None:
        """Fall back to the first step whose requirements no longer hold."""
        if self.is_locked:
            return
        if self.step != WizardStep.SELECT_DOCTOR and not self._step_one_ready():
            self.step = WizardStep.SELECT_DOCTOR
        elif self.step == WizardStep.CONFIRM and not self._step_two_ready():
            self.step = WizardStep.SELECT_DATE_TIME

    def _ensure_editable(self) -> None:
        if self.is_locked:
            raise InvalidSelectionError(f"Selections are locked while {self.step.value}")


def _require_id(value: int, kind: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidSelectionError(f"Invalid {kind} id: {value!r}")

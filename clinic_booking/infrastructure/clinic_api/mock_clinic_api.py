from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable

from clinic_booking.application.exceptions import ClinicApiRejectedError, ClinicAuthError
from clinic_booking.application.ports.clinic_api import ClinicApiPort
from clinic_booking.application.ports.credentials import CredentialProviderPort
from clinic_booking.application.utils.time_slots import enumerate_shift_slots, normalize_time_string
from clinic_booking.domain.entities.appointment import Appointment, AppointmentHistoryEntry, AppointmentStatus
from clinic_booking.domain.entities.catalog import Doctor, Service, Specialty
from clinic_booking.domain.entities.work_shift import WorkShift


class MockClinicApi(ClinicApiPort):
    """
    In-memory stand-in for the clinic backend, acting as the signed-in patient.

    Mirrors the backend rules the workflow depends on: slots come from the
    doctor's shifts minus the lead window, any non-Cancelled appointment holds
    its slot, only Scheduled appointments can be moved, and patients cannot
    cancel or move within the lead window. Permissions and payments are not
    modelled.
    """

    def __init__(
        self,
        now: Callable[[], datetime] | None = None,
        lead_minutes: int = 120,
        interval_minutes: int = 30,
        credentials: CredentialProviderPort | None = None,
        require_auth: bool = False,
        patient_id: int = 1,
    ) -> None:
        self._now = now or datetime.now
        self._lead_minutes = lead_minutes
        self._interval_minutes = interval_minutes
        self._credentials = credentials
        self._require_auth = require_auth
        self._patient_id = patient_id

        self.specialties: dict[int, Specialty] = {}
        self.doctors: dict[int, Doctor] = {}
        self.services: dict[int, Service] = {}
        self.shifts: list[WorkShift] = []
        self.appointments: dict[int, Appointment] = {}
        self.histories: dict[int, list[AppointmentHistoryEntry]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._logger = logging.getLogger(__name__)

    def with_credentials(self, credentials: CredentialProviderPort | None) -> "MockClinicApi":
        """Same backing data, different caller."""
        clone = MockClinicApi.__new__(MockClinicApi)
        clone.__dict__.update(self.__dict__)
        clone._credentials = credentials
        return clone

    def add_specialty(self, specialty: Specialty) -> None:
        self.specialties[specialty.id] = specialty

    def add_doctor(self, doctor: Doctor) -> None:
        self.doctors[doctor.id] = doctor

    def add_service(self, service: Service) -> None:
        self.services[service.id] = service

    def add_shift(self, shift: WorkShift) -> None:
        self.shifts.append(shift)

    def add_appointment(self, appointment: Appointment) -> None:
        self.appointments[appointment.appointment_id] = appointment

    def count_calls(self, name: str) -> int:
        return sum(1 for call_name, _ in self.calls if call_name == name)

    async def list_specialties(self) -> list[Specialty]:
        self._record("list_specialties")
        return list(self.specialties.values())

    async def list_doctors(self) -> list[Doctor]:
        self._record("list_doctors")
        return list(self.doctors.values())

    async def list_doctors_by_specialty(self, specialty_id: int) -> list[Doctor]:
        self._record("list_doctors_by_specialty", specialty_id=specialty_id)
        return [d for d in self.doctors.values() if d.specialty_id == specialty_id]

    async def list_services(self) -> list[Service]:
        self._record("list_services")
        return list(self.services.values())

    async def list_work_shifts(self, doctor_id: int) -> list[WorkShift]:
        self._record("list_work_shifts", doctor_id=doctor_id)
        self._check_auth()
        return [s for s in self.shifts if s.doctor_id == doctor_id]

    async def list_available_slots(self, doctor_id: int, day: date) -> list[str]:
        self._record("list_available_slots", doctor_id=doctor_id, day=day)
        return self._free_slots(doctor_id, day)

    async def create_appointment(
        self,
        doctor_id: int,
        day: date,
        time: str,
        service_id: int | None = None,
        notes: str | None = None,
    ) -> int:
        self._record("create_appointment", doctor_id=doctor_id, day=day, time=time, service_id=service_id)
        self._check_auth()
        if doctor_id not in self.doctors:
            raise self._rejected(400, "Bác sĩ không tồn tại")
        if time not in self._free_slots(doctor_id, day):
            raise self._rejected(400, "Khung giờ này đã có người đặt. Vui lòng chọn giờ khác.")

        appointment_id = max(self.appointments, default=0) + 1
        self.appointments[appointment_id] = Appointment(
            appointment_id=appointment_id,
            doctor_id=doctor_id,
            date=day,
            time=time,
            status=AppointmentStatus.SCHEDULED,
            patient_id=self._patient_id,
            notes=notes,
            doctor_name=self.doctors[doctor_id].name,
        )
        self._logger.info("Mock appointment created", extra={"appointment_id": appointment_id, "doctor_id": doctor_id})
        return appointment_id

    async def get_appointment(self, appointment_id: int) -> Appointment:
        self._record("get_appointment", appointment_id=appointment_id)
        self._check_auth()
        return self._get(appointment_id)

    async def list_my_appointments(self) -> list[Appointment]:
        self._record("list_my_appointments")
        self._check_auth()
        return [a for a in self.appointments.values() if a.patient_id == self._patient_id]

    async def reschedule_appointment(
        self,
        appointment_id: int,
        doctor_id: int,
        day: date,
        time: str,
        reason: str | None = None,
    ) -> str | None:
        self._record(
            "reschedule_appointment", appointment_id=appointment_id, doctor_id=doctor_id, day=day, time=time, reason=reason
        )
        self._check_auth()
        appointment = self._get(appointment_id)
        if appointment.status != AppointmentStatus.SCHEDULED:
            raise self._rejected(
                400,
                f"Không thể đổi lịch hẹn có trạng thái '{appointment.status.value}'. "
                "Chỉ có thể đổi lịch hẹn đang 'Scheduled'.",
            )
        refusal = self._lead_refusal(appointment, "đổi lịch")
        if refusal:
            raise self._rejected(400, refusal)
        if doctor_id not in self.doctors:
            raise self._rejected(400, "Bác sĩ không tồn tại")
        normalized = normalize_time_string(time)
        if normalized is None:
            raise self._rejected(400, "Giờ không hợp lệ. Định dạng: HH:mm")
        if self._is_taken(doctor_id, day, normalized, ignore_id=appointment_id):
            raise self._rejected(400, "Khung giờ này đã có người đặt. Vui lòng chọn giờ khác.")

        self.histories.setdefault(appointment_id, []).insert(
            0,
            AppointmentHistoryEntry(
                history_id=sum(len(h) for h in self.histories.values()) + 1,
                old_date=appointment.date,
                old_time=appointment.time,
                new_date=day,
                new_time=normalized,
                changed_by="Patient",
                changed_at=self._now().replace(tzinfo=None),
                old_doctor_name=self._doctor_name(appointment.doctor_id),
                new_doctor_name=self._doctor_name(doctor_id),
                change_reason=reason or "Bệnh nhân yêu cầu đổi lịch",
            ),
        )
        self.appointments[appointment_id] = replace(
            appointment, doctor_id=doctor_id, date=day, time=normalized, doctor_name=self._doctor_name(doctor_id)
        )
        return "Đổi lịch thành công"

    async def cancel_appointment(self, appointment_id: int) -> str | None:
        self._record("cancel_appointment", appointment_id=appointment_id)
        self._check_auth()
        appointment = self._get(appointment_id)
        if appointment.status == AppointmentStatus.CANCELLED:
            raise self._rejected(400, "Appointment is already cancelled")
        refusal = self._lead_refusal(appointment, "hủy lịch")
        if refusal:
            raise self._rejected(400, refusal)
        self.appointments[appointment_id] = replace(appointment, status=AppointmentStatus.CANCELLED)
        return "Appointment cancelled successfully. Time slot is now available for booking."

    async def get_appointment_history(self, appointment_id: int) -> list[AppointmentHistoryEntry]:
        self._record("get_appointment_history", appointment_id=appointment_id)
        self._check_auth()
        self._get(appointment_id)
        return list(self.histories.get(appointment_id, []))

    def _free_slots(self, doctor_id: int, day: date) -> list[str]:
        shifts = [s for s in self.shifts if s.doctor_id == doctor_id and s.date == day]
        slots = enumerate_shift_slots(shifts, day, self._now(), self._lead_minutes, self._interval_minutes)
        return [slot for slot in slots if not self._is_taken(doctor_id, day, slot)]

    def _is_taken(self, doctor_id: int, day: date, time: str, ignore_id: int | None = None) -> bool:
        for appointment in self.appointments.values():
            # only Cancelled frees a slot; Completed still holds it
            if appointment.appointment_id == ignore_id or appointment.status == AppointmentStatus.CANCELLED:
                continue
            if appointment.doctor_id == doctor_id and appointment.date == day and appointment.time == time:
                return True
        return False

    def _lead_refusal(self, appointment: Appointment, action: str) -> str | None:
        """Patients may not cancel or move an appointment that is past or less than the lead time away."""
        hours = (appointment.starts_at() - self._now().replace(tzinfo=None)).total_seconds() / 3600
        if hours < 0:
            return f"Không thể {action} đã qua giờ hẹn. Vui lòng liên hệ hotline: 1900-565656"
        if hours < self._lead_minutes / 60:
            return (
                f"Không thể {action} trong vòng {self._lead_minutes // 60} giờ trước giờ khám (còn {hours:.1f} giờ). "
                "Vui lòng liên hệ hotline: 1900-565656 để được hỗ trợ."
            )
        return None

    def _get(self, appointment_id: int) -> Appointment:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise self._rejected(404, "Không tìm thấy lịch hẹn")
        return appointment

    def _doctor_name(self, doctor_id: int) -> str | None:
        doctor = self.doctors.get(doctor_id)
        return doctor.name if doctor else None

    def _check_auth(self) -> None:
        if not self._require_auth:
            return
        token = self._credentials.get_token() if self._credentials else None
        if not token:
            raise ClinicAuthError("Missing bearer token", status_code=401)

    def _rejected(self, status_code: int, message: str) -> ClinicApiRejectedError:
        return ClinicApiRejectedError(message, status_code=status_code, server_message=message)

    def _record(self, name: str, **kwargs: Any) -> None:
        self.calls.append((name, kwargs))

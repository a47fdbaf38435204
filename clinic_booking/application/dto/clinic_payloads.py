from __future__ import annotations

from datetime import date, datetime, time
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from clinic_booking.application.utils.time_slots import normalize_time_string, parse_iso_date, parse_time_of_day
from clinic_booking.domain.entities.appointment import Appointment, AppointmentHistoryEntry, AppointmentStatus
from clinic_booking.domain.entities.catalog import Doctor, Service, Specialty
from clinic_booking.domain.entities.work_shift import WorkShift


def _as_date(value: Any) -> Any:
    parsed = parse_iso_date(value)
    return parsed if parsed is not None else value


def _as_hhmm(value: Any) -> Any:
    if isinstance(value, str):
        normalized = normalize_time_string(value)
        if normalized is None:
            raise ValueError(f"not a time of day: {value!r}")
        return normalized
    return value


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SpecialtyPayload(_Payload):
    specialty_id: int = Field(validation_alias=AliasChoices("specialtyId", "id"))
    name: str = Field(validation_alias=AliasChoices("name", "specialtyName"))
    description: str | None = None

    def to_entity(self) -> Specialty:
        return Specialty(id=self.specialty_id, name=self.name, description=self.description)


class DoctorPayload(_Payload):
    doctor_id: int = Field(validation_alias=AliasChoices("doctorId", "id"))
    name: str = Field(validation_alias=AliasChoices("name", "fullName"))
    phone: str | None = None
    image_url: str | None = Field(default=None, validation_alias=AliasChoices("imageUrl", "image_url"))
    specialty_id: int | None = Field(default=None, validation_alias=AliasChoices("specialtyId", "specialty_id"))
    specialty: dict[str, Any] | None = None

    def to_entity(self, default_specialty_id: int | None = None) -> Doctor:
        nested = self.specialty or {}
        specialty_id = self.specialty_id
        if specialty_id is None and nested.get("specialtyId") is not None:
            specialty_id = int(nested["specialtyId"])
        if specialty_id is None:
            specialty_id = default_specialty_id
        return Doctor(
            id=self.doctor_id,
            name=self.name,
            specialty_id=specialty_id,
            phone=self.phone,
            image_url=self.image_url,
            specialty_name=nested.get("name") or nested.get("specialtyName"),
        )


class ServicePayload(_Payload):
    service_id: int = Field(validation_alias=AliasChoices("serviceId", "id"))
    name: str = Field(validation_alias=AliasChoices("serviceName", "name"))
    price: float | None = None

    def to_entity(self) -> Service:
        return Service(id=self.service_id, name=self.name, price=self.price)


class WorkShiftPayload(_Payload):
    shift_id: int = Field(validation_alias=AliasChoices("shiftId", "id"))
    doctor_id: int = Field(validation_alias=AliasChoices("doctorId", "doctor_id"))
    day: date = Field(validation_alias=AliasChoices("date", "day"))
    start_time: str = Field(validation_alias=AliasChoices("startTime", "start_time"))
    end_time: str = Field(validation_alias=AliasChoices("endTime", "end_time"))

    @field_validator("day", mode="before")
    @classmethod
    def parse_day(cls, value: Any) -> Any:
        return _as_date(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, value: Any) -> Any:
        return _as_hhmm(value)

    def to_entity(self) -> WorkShift:
        start = parse_time_of_day(self.start_time) or time.min
        end = parse_time_of_day(self.end_time) or time.min
        return WorkShift(
            shift_id=self.shift_id,
            doctor_id=self.doctor_id,
            date=self.day,
            start_time=start,
            end_time=end,
        )


class AppointmentPayload(_Payload):
    appointment_id: int = Field(validation_alias=AliasChoices("appointmentId", "id"))
    day: date = Field(validation_alias=AliasChoices("date", "day"))
    time: str
    status: AppointmentStatus
    doctor_id: int | None = Field(default=None, validation_alias=AliasChoices("doctorId", "doctor_id"))
    doctor: dict[str, Any] | None = None
    patient_id: int | None = Field(default=None, validation_alias=AliasChoices("patientId", "patient_id"))
    patient: dict[str, Any] | None = None
    notes: str | None = None

    @field_validator("day", mode="before")
    @classmethod
    def parse_day(cls, value: Any) -> Any:
        return _as_date(value)

    @field_validator("time", mode="before")
    @classmethod
    def parse_time(cls, value: Any) -> Any:
        return _as_hhmm(value)

    def to_entity(self) -> Appointment:
        doctor = self.doctor or {}
        doctor_id = self.doctor_id if self.doctor_id is not None else doctor.get("doctorId")
        if doctor_id is None:
            raise ValueError("appointment payload has no doctor id")
        patient_id = self.patient_id
        if patient_id is None and self.patient:
            patient_id = self.patient.get("patientId")
        return Appointment(
            appointment_id=self.appointment_id,
            doctor_id=int(doctor_id),
            date=self.day,
            time=self.time,
            status=self.status,
            patient_id=patient_id,
            notes=self.notes,
            doctor_name=doctor.get("name"),
            specialty_name=doctor.get("specialtyName"),
        )


class AppointmentHistoryPayload(_Payload):
    history_id: int = Field(validation_alias=AliasChoices("historyId", "id"))
    old_date: date = Field(validation_alias=AliasChoices("oldDate", "old_date"))
    old_time: str = Field(validation_alias=AliasChoices("oldTime", "old_time"))
    new_date: date = Field(validation_alias=AliasChoices("newDate", "new_date"))
    new_time: str = Field(validation_alias=AliasChoices("newTime", "new_time"))
    changed_by: str = Field(validation_alias=AliasChoices("changedBy", "changed_by"))
    changed_date: datetime | None = Field(default=None, validation_alias=AliasChoices("changedDate", "changed_date"))
    old_doctor_name: str | None = Field(default=None, validation_alias=AliasChoices("oldDoctorName", "old_doctor_name"))
    new_doctor_name: str | None = Field(default=None, validation_alias=AliasChoices("newDoctorName", "new_doctor_name"))
    change_reason: str | None = Field(default=None, validation_alias=AliasChoices("changeReason", "change_reason"))

    @field_validator("old_date", "new_date", mode="before")
    @classmethod
    def parse_dates(cls, value: Any) -> Any:
        return _as_date(value)

    @field_validator("old_time", "new_time", mode="before")
    @classmethod
    def parse_times(cls, value: Any) -> Any:
        return _as_hhmm(value)

    def to_entity(self) -> AppointmentHistoryEntry:
        return AppointmentHistoryEntry(
            history_id=self.history_id,
            old_date=self.old_date,
            old_time=self.old_time,
            new_date=self.new_date,
            new_time=self.new_time,
            changed_by=self.changed_by,
            changed_at=self.changed_date,
            old_doctor_name=self.old_doctor_name,
            new_doctor_name=self.new_doctor_name,
            change_reason=self.change_reason,
        )


def extract_appointment_id(data: Any) -> int:
    """Create responses are either ``{"appointmentId": n, ...}`` or a bare ``n``."""
    value = data.get("appointmentId", data.get("id")) if isinstance(data, dict) else data
    if isinstance(value, bool) or value is None:
        raise ValueError("no appointment id in create response")
    return int(value)

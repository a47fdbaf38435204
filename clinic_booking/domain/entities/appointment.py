from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = "Pending"
    SCHEDULED = "Scheduled"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return _TERMINAL[self]

    @property
    def is_active(self) -> bool:
        return not _TERMINAL[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


# Every member must appear in both tables; a missing key fails loudly at lookup.
_TERMINAL: dict[AppointmentStatus, bool] = {
    AppointmentStatus.PENDING: False,
    AppointmentStatus.SCHEDULED: False,
    AppointmentStatus.CONFIRMED: False,
    AppointmentStatus.COMPLETED: True,
    AppointmentStatus.CANCELLED: True,
}

_LABELS: dict[AppointmentStatus, str] = {
    AppointmentStatus.PENDING: "Chờ xác nhận",
    AppointmentStatus.SCHEDULED: "Đã đặt lịch",
    AppointmentStatus.CONFIRMED: "Đã xác nhận",
    AppointmentStatus.COMPLETED: "Hoàn thành",
    AppointmentStatus.CANCELLED: "Đã hủy",
}


@dataclass(frozen=True)
class Appointment:
    appointment_id: int
    doctor_id: int
    date: date
    time: str  # HH:MM
    status: AppointmentStatus
    patient_id: int | None = None
    notes: str | None = None
    doctor_name: str | None = None
    specialty_name: str | None = None

    def starts_at(self) -> datetime:
        hour, minute = (int(part) for part in self.time.split(":"))
        return datetime.combine(self.date, datetime.min.time().replace(hour=hour, minute=minute))


@dataclass(frozen=True)
class AppointmentHistoryEntry:
    history_id: int
    old_date: date
    old_time: str
    new_date: date
    new_time: str
    changed_by: str
    changed_at: datetime | None = None
    old_doctor_name: str | None = None
    new_doctor_name: str | None = None
    change_reason: str | None = None

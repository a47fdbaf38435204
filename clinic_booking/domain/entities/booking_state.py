from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class WizardStep(str, Enum):
    SELECT_DOCTOR = "select_doctor"
    SELECT_DATE_TIME = "select_date_time"
    CONFIRM = "confirm"
    SUBMITTING = "submitting"
    SUCCESS = "success"


class FlowVariant(str, Enum):
    DOCTOR_DATE = "doctor_date"  # patient booking: doctor + date, then time
    SPECIALTY_DOCTOR_SERVICE = "specialty_doctor_service"  # specialty + doctor + service, then date + time


@dataclass(frozen=True)
class BookingSelection:
    specialty_id: int | None = None
    doctor_id: int | None = None
    service_id: int | None = None
    date: date | None = None
    time: str | None = None  # HH:MM, always taken from the resolved slot list
    notes: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.doctor_id and self.date and self.time)

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from clinic_booking.domain.entities.work_shift import WorkShift


class SlotStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    NO_SHIFT = "no_shift"  # doctor does not work that day
    FULLY_BOOKED = "fully_booked"  # works that day, nothing left
    ERROR = "error"  # could not load; never shown as fully booked


@dataclass(frozen=True)
class SlotResolution:
    status: SlotStatus = SlotStatus.IDLE
    doctor_id: int | None = None
    date: date | None = None
    slots: tuple[str, ...] = ()
    shifts: tuple[WorkShift, ...] = field(default_factory=tuple)
    generation: int = 0
    message: str | None = None
    superseded: bool = False

    def matches(self, doctor_id: int | None, day: date | None) -> bool:
        return self.doctor_id == doctor_id and self.date == day

    def offers(self, slot: str) -> bool:
        return self.status == SlotStatus.READY and slot in self.slots

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time


@dataclass(frozen=True)
class WorkShift:
    shift_id: int
    doctor_id: int
    date: date
    start_time: time
    end_time: time

    def contains(self, moment: time) -> bool:
        """True if ``moment`` falls in [start_time, end_time)."""
        return self.start_time <= moment < self.end_time

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable

from clinic_booking.application.exceptions import ClinicApiError, InvalidSelectionError
from clinic_booking.application.ports.clinic_api import ClinicApiPort
from clinic_booking.application.utils.time_slots import clip_slots, enumerate_shift_slots, parse_iso_date
from clinic_booking.domain.entities.slot_resolution import SlotResolution, SlotStatus
from clinic_booking.domain.entities.work_shift import WorkShift

NO_SHIFT_MESSAGE = "Bác sĩ không có lịch làm việc vào ngày này"
FULLY_BOOKED_MESSAGE = "Không có lịch trống cho ngày này"
LOAD_ERROR_MESSAGE = "Lỗi khi tải lịch trống"

SLOT_SOURCES = ("server", "local")


class ShiftSlotResolver:
    """
    Bookable slots for one (doctor, date) pair at a time.

    Every resolve() bumps a generation counter and clears the current result
    before the first network call. A response is applied only if its
    generation is still the latest one; older responses come back flagged
    ``superseded`` and leave ``current`` untouched.
    """

    def __init__(
        self,
        api: ClinicApiPort,
        now: Callable[[], datetime],
        lead_minutes: int = 120,
        interval_minutes: int = 30,
        source: str = "server",
    ) -> None:
        if source not in SLOT_SOURCES:
            raise ValueError(f"Unknown slot source: {source}")
        self._api = api
        self._now = now
        self._lead_minutes = lead_minutes
        self._interval_minutes = interval_minutes
        self._source = source
        self._generation = 0
        self.current = SlotResolution()
        self.upcoming_error: str | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def generation(self) -> int:
        return self._generation

    def reset(self) -> SlotResolution:
        """Drop the current result and any response still in flight."""
        self._generation += 1
        self.current = SlotResolution(generation=self._generation)
        return self.current

    async def resolve(self, doctor_id: int, day: date | str) -> SlotResolution:
        doctor_id, day = _validate(doctor_id, day)

        self._generation += 1
        generation = self._generation
        self.current = SlotResolution(
            status=SlotStatus.LOADING,
            doctor_id=doctor_id,
            date=day,
            generation=generation,
        )

        resolution = await self._fetch(doctor_id, day, generation)

        if generation != self._generation:
            self._logger.info(
                "Discarding superseded slot response",
                extra={"doctor_id": doctor_id, "date": day.isoformat(), "generation": generation},
            )
            return replace(resolution, superseded=True)

        self.current = resolution
        return resolution

    async def upcoming_shifts(self, doctor_id: int) -> list[WorkShift]:
        """Shifts from today on, for the date picker. Empty on failure, with ``upcoming_error`` set."""
        today = self._now().date()
        try:
            shifts = await self._api.list_work_shifts(doctor_id)
        except ClinicApiError as e:
            self._logger.error("Error fetching doctor work shifts", extra={"doctor_id": doctor_id, "error": str(e)})
            self.upcoming_error = LOAD_ERROR_MESSAGE
            return []
        self.upcoming_error = None
        return sorted((s for s in shifts if s.date >= today), key=lambda s: (s.date, s.start_time))

    async def _fetch(self, doctor_id: int, day: date, generation: int) -> SlotResolution:
        base = SlotResolution(doctor_id=doctor_id, date=day, generation=generation)

        try:
            shifts = await self._api.list_work_shifts(doctor_id)
        except ClinicApiError as e:
            return self._failed(base, e)

        day_shifts = tuple(sorted((s for s in shifts if s.date == day), key=lambda s: s.start_time))
        if not day_shifts:
            return replace(base, status=SlotStatus.NO_SHIFT, message=NO_SHIFT_MESSAGE)

        now = self._now()
        if self._source == "local":
            slots = enumerate_shift_slots(day_shifts, day, now, self._lead_minutes, self._interval_minutes)
        else:
            try:
                offered = await self._api.list_available_slots(doctor_id, day)
            except ClinicApiError as e:
                return self._failed(replace(base, shifts=day_shifts), e)
            slots = clip_slots(offered, day_shifts, day, now, self._lead_minutes)

        if not slots:
            return replace(base, status=SlotStatus.FULLY_BOOKED, shifts=day_shifts, message=FULLY_BOOKED_MESSAGE)
        return replace(base, status=SlotStatus.READY, shifts=day_shifts, slots=tuple(slots))

    def _failed(self, base: SlotResolution, error: ClinicApiError) -> SlotResolution:
        self._logger.error(
            "Error fetching slots",
            extra={"doctor_id": base.doctor_id, "date": base.date.isoformat() if base.date else None, "error": str(error)},
        )
        return replace(base, status=SlotStatus.ERROR, message=LOAD_ERROR_MESSAGE)


def _validate(doctor_id: int, day: date | str) -> tuple[int, date]:
    if isinstance(doctor_id, bool) or not isinstance(doctor_id, int) or doctor_id <= 0:
        raise InvalidSelectionError(f"Invalid doctor id: {doctor_id!r}")
    parsed = parse_iso_date(day)
    if parsed is None:
        raise InvalidSelectionError(f"Invalid date: {day!r}")
    return doctor_id, parsed

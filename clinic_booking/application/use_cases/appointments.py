from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from clinic_booking.application.exceptions import ClinicApiError, ClinicApiRejectedError
from clinic_booking.application.ports.clinic_api import ClinicApiPort
from clinic_booking.domain.entities.appointment import Appointment, AppointmentHistoryEntry, AppointmentStatus

CANCEL_FAILURE = "Không thể hủy lịch khám"
CANCEL_CONFIRMATION = "Bạn có chắc muốn hủy lịch khám này?"


@dataclass(frozen=True)
class CancelResult:
    action: str  # "cancelled", "needs_confirmation", "ignored", "failed"
    message: str | None = None
    status_code: int | None = None  # set on "failed": upstream status, 400 for refusals, 502 when unreachable


class AppointmentActions:
    def __init__(self, api: ClinicApiPort, now: Callable[[], datetime], lead_minutes: int = 120) -> None:
        self._api = api
        self._now = now
        self._lead = timedelta(minutes=lead_minutes)
        self._cancelling: set[int] = set()
        self._logger = logging.getLogger(__name__)

    async def list_mine(self) -> list[Appointment]:
        appointments = await self._api.list_my_appointments()
        return sorted(appointments, key=lambda a: (a.date, a.time), reverse=True)

    async def get(self, appointment_id: int) -> Appointment:
        return await self._api.get_appointment(appointment_id)

    async def history(self, appointment_id: int) -> list[AppointmentHistoryEntry]:
        return await self._api.get_appointment_history(appointment_id)

    def can_reschedule(self, appointment: Appointment) -> bool:
        # the server only moves Scheduled appointments
        return appointment.status == AppointmentStatus.SCHEDULED and self._outside_lead(appointment)

    def can_cancel(self, appointment: Appointment) -> bool:
        return appointment.status.is_active and self._outside_lead(appointment)

    async def cancel(self, appointment_id: int, confirmed: bool) -> CancelResult:
        if not confirmed:
            return CancelResult(action="needs_confirmation", message=CANCEL_CONFIRMATION)
        if appointment_id in self._cancelling:
            return CancelResult(action="ignored")

        self._cancelling.add(appointment_id)
        try:
            appointment = await self._api.get_appointment(appointment_id)
            if appointment.status.is_terminal:
                return CancelResult(
                    action="failed",
                    message=f"Không thể hủy lịch hẹn có trạng thái '{appointment.status.label}'",
                    status_code=400,
                )
            message = await self._api.cancel_appointment(appointment_id)
        except ClinicApiError as e:
            rejected = isinstance(e, ClinicApiRejectedError)
            reason = e.server_message if rejected and e.server_message else CANCEL_FAILURE
            status_code = e.status_code if rejected and e.status_code else 502
            self._logger.warning(
                "Cancel failed", extra={"appointment_id": appointment_id, "status": status_code, "reason": reason}
            )
            return CancelResult(action="failed", message=reason, status_code=status_code)
        finally:
            self._cancelling.discard(appointment_id)

        self._logger.info("Appointment cancelled", extra={"appointment_id": appointment_id})
        return CancelResult(action="cancelled", message=message)

    def _outside_lead(self, appointment: Appointment) -> bool:
        now = self._now().replace(tzinfo=None)
        return appointment.starts_at() - now >= self._lead

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from clinic_booking.application.dto.clinic_payloads import (
    AppointmentHistoryPayload,
    AppointmentPayload,
    DoctorPayload,
    ServicePayload,
    SpecialtyPayload,
    WorkShiftPayload,
    extract_appointment_id,
)
from clinic_booking.application.exceptions import (
    ClinicApiContractError,
    ClinicApiRejectedError,
    ClinicApiUnavailableError,
    ClinicAuthError,
)
from clinic_booking.application.ports.clinic_api import ClinicApiPort
from clinic_booking.application.ports.credentials import CredentialProviderPort
from clinic_booking.application.utils.time_slots import normalize_time_string
from clinic_booking.core.config import settings
from clinic_booking.domain.entities.appointment import Appointment, AppointmentHistoryEntry
from clinic_booking.domain.entities.catalog import Doctor, Service, Specialty
from clinic_booking.domain.entities.work_shift import WorkShift


def extract_error_message(body: str | None) -> str | None:
    """Pull ``message`` (or ``title``) out of a JSON error body. Plain-text bodies give None."""
    if not body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    for key in ("message", "title"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class ClinicApiClient(ClinicApiPort):
    def __init__(
        self,
        base_url: str | None = None,
        credentials: CredentialProviderPort | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or settings.CLINIC_API_BASE_URL).rstrip("/")
        self._credentials = credentials
        self._client = http_client or httpx.AsyncClient(timeout=timeout or settings.CLINIC_API_TIMEOUT_SECONDS)
        self._logger = logging.getLogger(__name__)

        if not self._base_url:
            raise ValueError("CLINIC_API_BASE_URL is required for the clinic API client")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_specialties(self) -> list[Specialty]:
        data = await self._request("GET", "/booking/specialties")
        return [p.to_entity() for p in self._parse_list(data, SpecialtyPayload)]

    async def list_doctors(self) -> list[Doctor]:
        data = await self._request("GET", "/doctors")
        return [p.to_entity() for p in self._parse_list(data, DoctorPayload)]

    async def list_doctors_by_specialty(self, specialty_id: int) -> list[Doctor]:
        data = await self._request("GET", f"/booking/doctors/{specialty_id}")
        # this endpoint omits the specialty on each doctor
        return [p.to_entity(default_specialty_id=specialty_id) for p in self._parse_list(data, DoctorPayload)]

    async def list_services(self) -> list[Service]:
        data = await self._request("GET", "/services")
        return [p.to_entity() for p in self._parse_list(data, ServicePayload)]

    async def list_work_shifts(self, doctor_id: int) -> list[WorkShift]:
        data = await self._request("GET", f"/schedule/workshift/{doctor_id}", auth=True)
        return [p.to_entity() for p in self._parse_list(data, WorkShiftPayload)]

    async def list_available_slots(self, doctor_id: int, day: date) -> list[str]:
        data = await self._request("GET", f"/booking/slots/{doctor_id}/{day.isoformat()}")
        if not isinstance(data, list):
            raise ClinicApiContractError("Slot list is not an array")
        slots: list[str] = []
        for raw in data:
            slot = normalize_time_string(raw) if isinstance(raw, str) else None
            if slot is None:
                self._logger.warning("Skipping malformed slot", extra={"doctor_id": doctor_id, "slot": raw})
                continue
            slots.append(slot)
        return slots

    async def create_appointment(
        self,
        doctor_id: int,
        day: date,
        time: str,
        service_id: int | None = None,
        notes: str | None = None,
    ) -> int:
        payload: dict[str, Any] = {"doctorId": doctor_id, "date": day.isoformat(), "time": time}
        if service_id is not None:
            payload["serviceId"] = service_id
        if notes:
            payload["notes"] = notes

        data = await self._request("POST", "/booking/appointments", auth=True, payload=payload)
        try:
            appointment_id = extract_appointment_id(data)
        except (TypeError, ValueError) as e:
            raise ClinicApiContractError(f"Create response without appointment id: {data!r}") from e

        self._logger.info("Appointment created", extra={"appointment_id": appointment_id, "doctor_id": doctor_id})
        return appointment_id

    async def get_appointment(self, appointment_id: int) -> Appointment:
        data = await self._request("GET", f"/appointments/{appointment_id}", auth=True)
        try:
            return AppointmentPayload.model_validate(data).to_entity()
        except (ValidationError, ValueError) as e:
            raise ClinicApiContractError(f"Malformed appointment {appointment_id}: {e}") from e

    async def list_my_appointments(self) -> list[Appointment]:
        data = await self._request("GET", "/appointments", auth=True)
        try:
            return [p.to_entity() for p in self._parse_list(data, AppointmentPayload)]
        except ValueError as e:
            raise ClinicApiContractError(f"Malformed appointment list: {e}") from e

    async def reschedule_appointment(
        self,
        appointment_id: int,
        doctor_id: int,
        day: date,
        time: str,
        reason: str | None = None,
    ) -> str | None:
        payload: dict[str, Any] = {"date": day.isoformat(), "time": time, "doctorId": doctor_id}
        if reason:
            payload["reason"] = reason

        data = await self._request("PUT", f"/appointments/{appointment_id}/reschedule", auth=True, payload=payload)
        self._logger.info("Appointment rescheduled", extra={"appointment_id": appointment_id, "doctor_id": doctor_id})
        return data.get("message") if isinstance(data, dict) else None

    async def cancel_appointment(self, appointment_id: int) -> str | None:
        data = await self._request("PUT", f"/appointments/{appointment_id}/cancel", auth=True)
        self._logger.info("Appointment cancelled", extra={"appointment_id": appointment_id})
        return data.get("message") if isinstance(data, dict) else None

    async def get_appointment_history(self, appointment_id: int) -> list[AppointmentHistoryEntry]:
        data = await self._request("GET", f"/appointments/{appointment_id}/history", auth=True)
        return [p.to_entity() for p in self._parse_list(data, AppointmentHistoryPayload)]

    async def _request(
        self,
        method: str,
        path: str,
        auth: bool = False,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        headers = {"Accept": "application/json"}
        if auth:
            token = self._credentials.get_token() if self._credentials else None
            if not token:
                raise ClinicAuthError(f"{method} {path} requires a bearer token", status_code=401)
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(method, url, json=payload, headers=headers)
        except httpx.RequestError as e:
            self._logger.error("Clinic API unreachable", extra={"path": path, "error": str(e)})
            raise ClinicApiUnavailableError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            server_message = extract_error_message(response.text)
            self._logger.error(
                "Clinic API rejected request",
                extra={"path": path, "status": response.status_code, "reason": server_message or response.text[:200]},
            )
            error_cls = ClinicAuthError if response.status_code in (401, 403) else ClinicApiRejectedError
            raise error_cls(
                server_message or f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                server_message=server_message,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ClinicApiContractError(f"{method} {path} returned non-JSON body") from e

    def _parse_list(self, data: Any, payload_cls: type[BaseModel]) -> list[Any]:
        if not isinstance(data, list):
            raise ClinicApiContractError(f"Expected a list of {payload_cls.__name__}, got {type(data).__name__}")
        try:
            return [payload_cls.model_validate(item) for item in data]
        except ValidationError as e:
            raise ClinicApiContractError(f"Malformed {payload_cls.__name__}: {e}") from e

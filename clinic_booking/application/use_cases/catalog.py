from __future__ import annotations

import logging

from clinic_booking.application.exceptions import ClinicApiError
from clinic_booking.application.ports.clinic_api import ClinicApiPort
from clinic_booking.domain.entities.catalog import Doctor, Service, Specialty

CATALOG_ERROR_MESSAGES = {
    "specialties": "Không tải được danh sách chuyên khoa",
    "doctors": "Không tải được danh sách bác sĩ",
    "services": "Không tải được danh sách dịch vụ",
}


class CatalogLoader:
    """
    Reference data for the selection controls.
    Failures never raise: the list comes back empty and the error is kept in
    ``errors`` so the caller can offer a retry.
    """

    def __init__(self, api: ClinicApiPort) -> None:
        self._api = api
        self.specialties: list[Specialty] = []
        self.doctors: list[Doctor] = []
        self.services: list[Service] = []
        self.errors: dict[str, str] = {}
        self._logger = logging.getLogger(__name__)

    async def load_specialties(self) -> list[Specialty]:
        try:
            self.specialties = await self._api.list_specialties()
        except ClinicApiError as e:
            self.specialties = self._failed("specialties", e)
        else:
            self.errors.pop("specialties", None)
        return list(self.specialties)

    async def load_doctors(self, specialty_id: int | None = None) -> list[Doctor]:
        try:
            if specialty_id is None:
                doctors = await self._api.list_doctors()
            else:
                doctors = await self._api.list_doctors_by_specialty(specialty_id)
        except ClinicApiError as e:
            self.doctors = self._failed("doctors", e, specialty_id=specialty_id)
        else:
            self.doctors = filter_doctors(doctors, specialty_id)
            self.errors.pop("doctors", None)
        return list(self.doctors)

    async def load_services(self) -> list[Service]:
        try:
            self.services = await self._api.list_services()
        except ClinicApiError as e:
            self.services = self._failed("services", e)
        else:
            self.errors.pop("services", None)
        return list(self.services)

    def has_error(self, kind: str) -> bool:
        return kind in self.errors

    def _failed(self, kind: str, error: ClinicApiError, **context: object) -> list:
        self._logger.error(
            "Catalog load failed",
            extra={"catalog": kind, "error": str(error), **context},
        )
        self.errors[kind] = CATALOG_ERROR_MESSAGES[kind]
        return []


def filter_doctors(doctors: list[Doctor], specialty_id: int | None) -> list[Doctor]:
    """Doctors of one specialty, or all of them when ``specialty_id`` is None."""
    if specialty_id is None:
        return list(doctors)
    return [d for d in doctors if d.specialty_id == specialty_id]

from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import Callable
from zoneinfo import ZoneInfo

import httpx
from fastapi import Depends, Header

from clinic_booking.application.ports.clinic_api import ClinicApiPort
from clinic_booking.application.ports.credentials import CredentialProviderPort
from clinic_booking.application.ports.workflow_store import WorkflowStorePort
from clinic_booking.application.use_cases.appointments import AppointmentActions
from clinic_booking.application.use_cases.booking import BookingWizard
from clinic_booking.application.use_cases.catalog import CatalogLoader
from clinic_booking.application.use_cases.reschedule import RescheduleController
from clinic_booking.application.use_cases.slot_resolver import ShiftSlotResolver
from clinic_booking.core.config import settings
from clinic_booking.domain.entities.booking_state import FlowVariant
from clinic_booking.infrastructure.clinic_api.demo_data import seed_demo_data
from clinic_booking.infrastructure.clinic_api.http_client import ClinicApiClient
from clinic_booking.infrastructure.clinic_api.mock_clinic_api import MockClinicApi
from clinic_booking.infrastructure.credentials import StaticTokenProvider
from clinic_booking.infrastructure.store.memory_store import MemoryWorkflowStore


_workflow_store: MemoryWorkflowStore | None = None
_mock_api: MockClinicApi | None = None
_http_client: httpx.AsyncClient | None = None


def uses_mock_api() -> bool:
    return settings.CLINIC_API_USE_MOCK or settings.ENV.lower() in {"dev", "local"}


@lru_cache
def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.CLINIC_TIMEZONE)


def get_clock() -> Callable[[], datetime]:
    tz = get_timezone()
    return lambda: datetime.now(tz)


def get_credentials(authorization: str | None = Header(default=None)) -> CredentialProviderPort:
    return StaticTokenProvider.from_authorization_header(authorization)


def get_clinic_api(credentials: CredentialProviderPort = Depends(get_credentials)) -> ClinicApiPort:
    global _mock_api, _http_client
    if uses_mock_api():
        if _mock_api is None:
            logging.getLogger(__name__).info("Using MockClinicApi (ENV=%s)", settings.ENV)
            clock = get_clock()
            _mock_api = seed_demo_data(
                MockClinicApi(
                    now=clock,
                    lead_minutes=settings.BOOKING_LEAD_MINUTES,
                    interval_minutes=settings.SLOT_INTERVAL_MINUTES,
                ),
                start=clock().date(),
            )
        return _mock_api.with_credentials(credentials)

    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=settings.CLINIC_API_TIMEOUT_SECONDS)
    return ClinicApiClient(credentials=credentials, http_client=_http_client)


async def close_clinic_api() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def get_workflow_store() -> WorkflowStorePort:
    global _workflow_store
    if _workflow_store is None:
        _workflow_store = MemoryWorkflowStore(limit=settings.SESSION_LIMIT)
    return _workflow_store


def build_slot_resolver(api: ClinicApiPort, now: Callable[[], datetime]) -> ShiftSlotResolver:
    return ShiftSlotResolver(
        api=api,
        now=now,
        lead_minutes=settings.BOOKING_LEAD_MINUTES,
        interval_minutes=settings.SLOT_INTERVAL_MINUTES,
        source=settings.SLOT_SOURCE,
    )


def build_booking_wizard(
    api: ClinicApiPort,
    now: Callable[[], datetime],
    variant: FlowVariant = FlowVariant.DOCTOR_DATE,
) -> BookingWizard:
    return BookingWizard(
        api=api,
        catalog=CatalogLoader(api),
        resolver=build_slot_resolver(api, now),
        now=now,
        variant=variant,
    )


def build_reschedule_controller(
    api: ClinicApiPort,
    now: Callable[[], datetime],
    appointment_id: int,
) -> RescheduleController:
    return RescheduleController(
        api=api,
        catalog=CatalogLoader(api),
        resolver=build_slot_resolver(api, now),
        now=now,
        appointment_id=appointment_id,
    )


def get_appointment_actions(
    api: ClinicApiPort = Depends(get_clinic_api),
    now: Callable[[], datetime] = Depends(get_clock),
) -> AppointmentActions:
    return AppointmentActions(api=api, now=now, lead_minutes=settings.BOOKING_LEAD_MINUTES)

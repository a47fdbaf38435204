"""
Shared fixtures: a fixed clock and an in-memory clinic API seeded with demo data.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from clinic_booking.application.use_cases.booking import BookingWizard
from clinic_booking.application.use_cases.catalog import CatalogLoader
from clinic_booking.application.use_cases.slot_resolver import ShiftSlotResolver
from clinic_booking.infrastructure.clinic_api.demo_data import seed_demo_data
from clinic_booking.infrastructure.clinic_api.mock_clinic_api import MockClinicApi

# Sunday evening; the first working day after it is Monday 2025-03-10
NOW = datetime(2025, 3, 9, 18, 0)
MONDAY = date(2025, 3, 10)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def api(clock: Clock) -> MockClinicApi:
    return seed_demo_data(MockClinicApi(now=clock), start=MONDAY, days=7)


@pytest.fixture
def resolver(api: MockClinicApi, clock: Clock) -> ShiftSlotResolver:
    return ShiftSlotResolver(api=api, now=clock)


@pytest.fixture
def wizard(api: MockClinicApi, clock: Clock) -> BookingWizard:
    return BookingWizard(
        api=api,
        catalog=CatalogLoader(api),
        resolver=ShiftSlotResolver(api=api, now=clock),
        now=clock,
    )

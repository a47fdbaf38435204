"""
Tests for appointment listing, status labels and cancellation.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime

import pytest

from clinic_booking.application.exceptions import ClinicApiUnavailableError
from clinic_booking.application.use_cases.appointments import CANCEL_FAILURE, AppointmentActions
from clinic_booking.domain.entities.appointment import Appointment, AppointmentStatus
from clinic_booking.infrastructure.clinic_api.mock_clinic_api import MockClinicApi

MONDAY = date(2025, 3, 10)


class GatedCancelApi(MockClinicApi):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.release = asyncio.Event()

    async def cancel_appointment(self, appointment_id):
        await self.release.wait()
        return await super().cancel_appointment(appointment_id)


class UnreachableApi(MockClinicApi):
    async def get_appointment(self, appointment_id):
        raise ClinicApiUnavailableError("connection refused")


def _appointment(appointment_id: int, day: date, time: str, status=AppointmentStatus.SCHEDULED) -> Appointment:
    return Appointment(appointment_id=appointment_id, doctor_id=1, date=day, time=time, status=status, patient_id=1)


def test_every_status_has_label_and_class():
    for status in AppointmentStatus:
        assert status.label
        assert status.is_terminal != status.is_active
    assert AppointmentStatus.CANCELLED.label == "Đã hủy"
    assert AppointmentStatus.SCHEDULED.label == "Đã đặt lịch"
    assert AppointmentStatus("Completed").is_terminal


@pytest.mark.asyncio
async def test_list_mine_is_newest_first(api, clock):
    api.add_appointment(_appointment(1, MONDAY, "09:00"))
    api.add_appointment(_appointment(2, date(2025, 3, 12), "08:00"))
    api.add_appointment(_appointment(3, MONDAY, "10:30"))
    actions = AppointmentActions(api, clock)

    appointments = await actions.list_mine()

    assert [a.appointment_id for a in appointments] == [2, 3, 1]


def test_reschedule_and_cancel_respect_lead_window(api):
    # 2h before 10:00
    actions = AppointmentActions(api, lambda: datetime(2025, 3, 10, 8, 30))

    soon = _appointment(1, MONDAY, "10:00")
    later = _appointment(2, MONDAY, "11:00")
    confirmed = _appointment(3, MONDAY, "11:00", status=AppointmentStatus.CONFIRMED)
    done = _appointment(4, MONDAY, "11:00", status=AppointmentStatus.COMPLETED)

    assert not actions.can_reschedule(soon)
    assert actions.can_reschedule(later)
    assert not actions.can_reschedule(confirmed)
    assert actions.can_cancel(confirmed)
    assert not actions.can_cancel(done)


@pytest.mark.asyncio
async def test_cancel_requires_confirmation(api, clock):
    api.add_appointment(_appointment(1, MONDAY, "09:00"))
    actions = AppointmentActions(api, clock)

    result = await actions.cancel(1, confirmed=False)

    assert result.action == "needs_confirmation"
    assert api.count_calls("cancel_appointment") == 0
    assert api.appointments[1].status == AppointmentStatus.SCHEDULED


@pytest.mark.asyncio
async def test_confirmed_cancel(api, clock):
    api.add_appointment(_appointment(1, MONDAY, "09:00"))
    actions = AppointmentActions(api, clock)

    result = await actions.cancel(1, confirmed=True)

    assert result.action == "cancelled"
    assert api.appointments[1].status == AppointmentStatus.CANCELLED


@pytest.mark.asyncio
async def test_cancel_twice_in_flight_sends_one_request(clock):
    api = GatedCancelApi(now=clock)
    api.add_appointment(_appointment(1, MONDAY, "09:00"))
    actions = AppointmentActions(api, clock)

    first = asyncio.create_task(actions.cancel(1, confirmed=True))
    await asyncio.sleep(0)
    second = await actions.cancel(1, confirmed=True)
    api.release.set()

    assert second.action == "ignored"
    assert (await first).action == "cancelled"
    assert api.count_calls("cancel_appointment") == 1


@pytest.mark.asyncio
async def test_cancel_of_cancelled_appointment_fails_without_request(api, clock):
    api.add_appointment(_appointment(1, MONDAY, "09:00", status=AppointmentStatus.CANCELLED))
    actions = AppointmentActions(api, clock)

    result = await actions.cancel(1, confirmed=True)

    assert result.action == "failed"
    assert "Đã hủy" in result.message
    assert result.status_code == 400
    assert api.count_calls("cancel_appointment") == 0


@pytest.mark.asyncio
async def test_cancel_of_unknown_appointment_reports_server_message(api, clock):
    actions = AppointmentActions(api, clock)

    result = await actions.cancel(404, confirmed=True)

    assert result.action == "failed"
    assert result.message == "Không tìm thấy lịch hẹn"
    assert result.status_code == 404


@pytest.mark.asyncio
async def test_cancel_when_backend_is_unreachable_is_502(clock):
    actions = AppointmentActions(UnreachableApi(now=clock), clock)

    result = await actions.cancel(1, confirmed=True)

    assert result.action == "failed"
    assert result.message == CANCEL_FAILURE
    assert result.status_code == 502

"""
Tests for the in-memory clinic API: slot holding and the patient lead window.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from clinic_booking.application.exceptions import ClinicApiRejectedError
from clinic_booking.application.use_cases.appointments import AppointmentActions
from clinic_booking.domain.entities.appointment import Appointment, AppointmentStatus
from clinic_booking.infrastructure.clinic_api.demo_data import seed_demo_data
from clinic_booking.infrastructure.clinic_api.mock_clinic_api import MockClinicApi

MONDAY = date(2025, 3, 10)
TUESDAY = date(2025, 3, 11)


def _api(now: datetime) -> MockClinicApi:
    api = seed_demo_data(MockClinicApi(now=lambda: now), start=MONDAY, days=7)
    api.add_appointment(
        Appointment(
            appointment_id=1, doctor_id=1, date=MONDAY, time="10:00", status=AppointmentStatus.SCHEDULED, patient_id=1
        )
    )
    return api


@pytest.mark.asyncio
async def test_completed_appointment_still_holds_its_slot():
    api = _api(datetime(2025, 3, 9, 18, 0))
    api.add_appointment(
        Appointment(appointment_id=2, doctor_id=1, date=MONDAY, time="09:00", status=AppointmentStatus.COMPLETED)
    )
    api.add_appointment(
        Appointment(appointment_id=3, doctor_id=1, date=MONDAY, time="09:30", status=AppointmentStatus.CANCELLED)
    )

    slots = await api.list_available_slots(1, MONDAY)

    assert "09:00" not in slots
    assert "09:30" in slots
    assert "10:00" not in slots


@pytest.mark.asyncio
async def test_cancel_within_lead_window_is_refused():
    api = _api(datetime(2025, 3, 10, 9, 0))

    with pytest.raises(ClinicApiRejectedError) as raised:
        await api.cancel_appointment(1)

    assert raised.value.status_code == 400
    assert "trong vòng 2 giờ trước giờ khám" in raised.value.server_message
    assert "1900-565656" in raised.value.server_message
    assert api.appointments[1].status == AppointmentStatus.SCHEDULED


@pytest.mark.asyncio
async def test_cancel_after_appointment_time_is_refused():
    api = _api(datetime(2025, 3, 10, 11, 0))

    with pytest.raises(ClinicApiRejectedError) as raised:
        await api.cancel_appointment(1)

    assert "đã qua giờ hẹn" in raised.value.server_message


@pytest.mark.asyncio
async def test_reschedule_within_lead_window_is_refused():
    api = _api(datetime(2025, 3, 10, 8, 30))

    with pytest.raises(ClinicApiRejectedError) as raised:
        await api.reschedule_appointment(1, doctor_id=1, day=TUESDAY, time="09:00")

    assert raised.value.status_code == 400
    assert "Không thể đổi lịch trong vòng 2 giờ" in raised.value.server_message
    assert api.appointments[1].date == MONDAY
    assert api.histories == {}


@pytest.mark.asyncio
async def test_reschedule_outside_lead_window_moves_and_records_history():
    api = _api(datetime(2025, 3, 9, 18, 0))

    message = await api.reschedule_appointment(1, doctor_id=1, day=TUESDAY, time="09:00", reason="Bận việc")

    assert message == "Đổi lịch thành công"
    assert api.appointments[1].date == TUESDAY
    assert api.histories[1][0].change_reason == "Bận việc"
    assert api.histories[1][0].old_time == "10:00"


@pytest.mark.asyncio
async def test_cancel_refusal_reaches_caller_as_400():
    now = datetime(2025, 3, 10, 9, 0)
    actions = AppointmentActions(_api(now), lambda: now)

    result = await actions.cancel(1, confirmed=True)

    assert result.action == "failed"
    assert result.status_code == 400
    assert "hotline" in result.message

"""
Tests for the reschedule controller.
"""

from __future__ import annotations

from datetime import date, datetime, time

import pytest

from clinic_booking.application.exceptions import AppointmentNotEditableError
from clinic_booking.application.use_cases.catalog import CatalogLoader
from clinic_booking.application.use_cases.reschedule import DEFAULT_REASON, RescheduleController
from clinic_booking.application.use_cases.slot_resolver import ShiftSlotResolver
from clinic_booking.domain.entities.appointment import Appointment, AppointmentStatus
from clinic_booking.domain.entities.booking_state import WizardStep
from clinic_booking.domain.entities.catalog import Doctor, Specialty
from clinic_booking.domain.entities.slot_resolution import SlotStatus
from clinic_booking.domain.entities.work_shift import WorkShift
from clinic_booking.infrastructure.clinic_api.mock_clinic_api import MockClinicApi

DAY = date(2025, 3, 1)
NEXT_DAY = date(2025, 3, 2)


@pytest.fixture
def now():
    return lambda: datetime(2025, 2, 27, 10, 0)


@pytest.fixture
def api(now) -> MockClinicApi:
    api = MockClinicApi(now=now)
    api.add_specialty(Specialty(id=1, name="Tim mạch"))
    api.add_specialty(Specialty(id=2, name="Nhi khoa"))
    api.add_doctor(Doctor(id=7, name="BS. Hoàng Gia Bảo", specialty_id=1))
    api.add_doctor(Doctor(id=8, name="BS. Vũ Thị Lan", specialty_id=2))
    api.add_shift(WorkShift(shift_id=1, doctor_id=7, date=DAY, start_time=time(8), end_time=time(12)))
    api.add_shift(WorkShift(shift_id=2, doctor_id=7, date=NEXT_DAY, start_time=time(8), end_time=time(10)))
    api.add_shift(WorkShift(shift_id=3, doctor_id=8, date=DAY, start_time=time(13), end_time=time(15)))
    api.add_appointment(
        Appointment(
            appointment_id=42,
            doctor_id=7,
            date=DAY,
            time="09:00",
            status=AppointmentStatus.SCHEDULED,
            patient_id=1,
        )
    )
    return api


@pytest.fixture
def controller(api, now) -> RescheduleController:
    return RescheduleController(api, CatalogLoader(api), ShiftSlotResolver(api, now), now, appointment_id=42)


@pytest.mark.asyncio
async def test_open_prefills_from_appointment(controller):
    await controller.open()

    assert controller.selection.doctor_id == 7
    assert controller.selection.date == DAY
    assert controller.selection.time == "09:00"
    assert controller.step == WizardStep.CONFIRM
    assert controller.slots.status == SlotStatus.READY
    # the appointment's own slot is booked by itself
    assert "09:00" not in controller.slots.slots


@pytest.mark.asyncio
async def test_original_slot_stays_selectable(controller):
    await controller.open()

    controller.select_time("10:00")
    controller.select_time("09:00")

    assert controller.selection.time == "09:00"


@pytest.mark.asyncio
async def test_submit_moves_appointment_with_reason(api, controller):
    await controller.open()
    await controller.select_date(NEXT_DAY)
    controller.select_time("08:30")
    assert controller.advance()

    result = await controller.submit(reason="Bận việc gia đình")

    assert result.action == "rescheduled"
    assert result.navigate_to == "/patient/appointments/42"
    call = next(kwargs for name, kwargs in api.calls if name == "reschedule_appointment")
    assert call == {
        "appointment_id": 42,
        "doctor_id": 7,
        "day": NEXT_DAY,
        "time": "08:30",
        "reason": "Bận việc gia đình",
    }
    assert api.appointments[42].date == NEXT_DAY
    assert api.histories[42][0].change_reason == "Bận việc gia đình"
    assert api.count_calls("create_appointment") == 0


@pytest.mark.asyncio
async def test_blank_reason_falls_back_to_default(api, controller):
    await controller.open()
    controller.select_time("11:00")

    await controller.submit(reason="   ")

    call = next(kwargs for name, kwargs in api.calls if name == "reschedule_appointment")
    assert call["reason"] == DEFAULT_REASON


@pytest.mark.asyncio
async def test_terminal_appointment_cannot_be_opened(api, controller):
    api.appointments[42] = Appointment(
        appointment_id=42, doctor_id=7, date=DAY, time="09:00", status=AppointmentStatus.COMPLETED
    )

    with pytest.raises(AppointmentNotEditableError):
        await controller.open()


@pytest.mark.asyncio
async def test_specialty_change_resets_doctor_and_keeps_date(controller):
    await controller.open()

    await controller.select_specialty(2)

    assert [d.id for d in controller.doctors] == [8]
    assert controller.selection.doctor_id is None
    assert controller.selection.date == DAY
    assert controller.selection.time is None
    assert controller.step == WizardStep.SELECT_DOCTOR


@pytest.mark.asyncio
async def test_doctor_change_keeps_date_and_reloads_slots(controller):
    await controller.open()

    await controller.select_doctor(8)

    assert controller.selection.date == DAY
    assert controller.selection.time is None
    assert controller.slots.matches(8, DAY)
    assert controller.slots.slots == ("13:00", "13:30", "14:00", "14:30")
    with pytest.raises(ValueError):
        controller.select_time("09:00")  # original slot belongs to doctor 7


@pytest.mark.asyncio
async def test_taken_slot_reports_server_message(api, controller):
    await controller.open()
    controller.select_time("10:00")
    api.add_appointment(
        Appointment(appointment_id=43, doctor_id=7, date=DAY, time="10:00", status=AppointmentStatus.SCHEDULED)
    )

    result = await controller.submit()

    assert result.action == "failed"
    assert result.message == "Khung giờ này đã có người đặt. Vui lòng chọn giờ khác."
    assert api.appointments[42].time == "09:00"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED])
async def test_only_scheduled_appointment_can_be_opened(api, controller, status):
    api.appointments[42] = Appointment(appointment_id=42, doctor_id=7, date=DAY, time="09:00", status=status)

    with pytest.raises(AppointmentNotEditableError, match=status.label):
        await controller.open()
    assert api.count_calls("list_specialties") == 0

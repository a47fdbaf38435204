from __future__ import annotations

from datetime import date, time, timedelta

from clinic_booking.domain.entities.catalog import Doctor, Service, Specialty
from clinic_booking.domain.entities.work_shift import WorkShift
from clinic_booking.infrastructure.clinic_api.mock_clinic_api import MockClinicApi

DEMO_SPECIALTIES = (
    Specialty(id=1, name="Tim mạch", description="Khám và điều trị bệnh tim mạch"),
    Specialty(id=2, name="Nhi khoa", description="Chăm sóc sức khỏe trẻ em"),
    Specialty(id=3, name="Da liễu", description="Các bệnh về da"),
)

DEMO_DOCTORS = (
    Doctor(id=1, name="BS. Nguyễn Văn An", specialty_id=1, phone="0901000001", specialty_name="Tim mạch"),
    Doctor(id=2, name="BS. Trần Thị Bình", specialty_id=1, phone="0901000002", specialty_name="Tim mạch"),
    Doctor(id=3, name="BS. Lê Minh Châu", specialty_id=2, phone="0901000003", specialty_name="Nhi khoa"),
    Doctor(id=4, name="BS. Phạm Thu Dung", specialty_id=3, phone="0901000004", specialty_name="Da liễu"),
)

DEMO_SERVICES = (
    Service(id=1, name="Khám tổng quát", price=200000),
    Service(id=2, name="Điện tâm đồ", price=150000),
    Service(id=3, name="Siêu âm tim", price=450000),
)

# (start, end) per doctor; weekends off
DEMO_HOURS = {
    1: (time(8, 0), time(12, 0)),
    2: (time(13, 0), time(17, 0)),
    3: (time(8, 0), time(17, 0)),
    4: (time(9, 0), time(11, 30)),
}


def seed_demo_data(api: MockClinicApi, start: date, days: int = 14) -> MockClinicApi:
    for specialty in DEMO_SPECIALTIES:
        api.add_specialty(specialty)
    for doctor in DEMO_DOCTORS:
        api.add_doctor(doctor)
    for service in DEMO_SERVICES:
        api.add_service(service)

    shift_id = 1
    for offset in range(days):
        day = start + timedelta(days=offset)
        if day.weekday() >= 5:
            continue
        for doctor_id, (begin, end) in DEMO_HOURS.items():
            api.add_shift(WorkShift(shift_id=shift_id, doctor_id=doctor_id, date=day, start_time=begin, end_time=end))
            shift_id += 1
    return api

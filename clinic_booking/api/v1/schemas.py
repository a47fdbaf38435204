import datetime as dt

from pydantic import BaseModel, Field

from clinic_booking.domain.entities.booking_state import FlowVariant, WizardStep
from clinic_booking.domain.entities.slot_resolution import SlotStatus


class SpecialtySchema(BaseModel):
    id: int
    name: str
    description: str | None = None


class DoctorSchema(BaseModel):
    id: int
    name: str
    specialty_id: int | None = None
    specialty_name: str | None = None
    image_url: str | None = None


class ServiceSchema(BaseModel):
    id: int
    name: str
    price: float | None = None


class WorkShiftSchema(BaseModel):
    shift_id: int
    date: dt.date
    start_time: str
    end_time: str


class SelectionSchema(BaseModel):
    specialty_id: int | None = None
    doctor_id: int | None = None
    service_id: int | None = None
    date: dt.date | None = None
    time: str | None = None
    notes: str | None = None


class SlotsSchema(BaseModel):
    status: SlotStatus
    doctor_id: int | None = None
    date: dt.date | None = None
    slots: list[str] = Field(default_factory=list)
    message: str | None = None
    generation: int = 0


class AppointmentSchema(BaseModel):
    appointment_id: int
    doctor_id: int
    doctor_name: str | None = None
    specialty_name: str | None = None
    date: dt.date
    time: str
    status: str
    status_label: str
    notes: str | None = None
    can_reschedule: bool = False
    can_cancel: bool = False


class HistoryEntrySchema(BaseModel):
    history_id: int
    old_date: dt.date
    old_time: str
    new_date: dt.date
    new_time: str
    old_doctor_name: str | None = None
    new_doctor_name: str | None = None
    changed_by: str
    changed_at: dt.datetime | None = None
    change_reason: str | None = None


class SessionSchema(BaseModel):
    session_id: str
    kind: str  # "booking" or "reschedule"
    variant: FlowVariant
    step: WizardStep
    selection: SelectionSchema
    slots: SlotsSchema
    specialties: list[SpecialtySchema] = Field(default_factory=list)
    doctors: list[DoctorSchema] = Field(default_factory=list)
    services: list[ServiceSchema] = Field(default_factory=list)
    upcoming_shifts: list[WorkShiftSchema] = Field(default_factory=list)
    catalog_errors: dict[str, str] = Field(default_factory=dict)
    upcoming_error: str | None = None
    error: str | None = None
    appointment_id: int | None = None
    original: AppointmentSchema | None = None


class StartSessionRequestSchema(BaseModel):
    variant: FlowVariant = FlowVariant.DOCTOR_DATE


class SelectionPatchSchema(BaseModel):
    """Only the fields present in the body are applied, in declaration order."""

    specialty_id: int | None = None
    doctor_id: int | None = None
    service_id: int | None = None
    date: str | None = None
    time: str | None = None
    notes: str | None = None


class StepResponseSchema(BaseModel):
    moved: bool
    session: SessionSchema


class SubmitRequestSchema(BaseModel):
    reason: str | None = None


class SubmitResponseSchema(BaseModel):
    action: str
    step: WizardStep
    message: str | None = None
    appointment_id: int | None = None
    navigate_to: str | None = None
    session: SessionSchema


class CancelRequestSchema(BaseModel):
    confirm: bool = False


class CancelResponseSchema(BaseModel):
    action: str
    message: str | None = None

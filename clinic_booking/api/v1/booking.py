import logging
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException

from clinic_booking.api.v1.schemas import (
    AppointmentSchema,
    DoctorSchema,
    SelectionPatchSchema,
    SelectionSchema,
    ServiceSchema,
    SessionSchema,
    SlotsSchema,
    SpecialtySchema,
    StartSessionRequestSchema,
    StepResponseSchema,
    SubmitRequestSchema,
    SubmitResponseSchema,
    WorkShiftSchema,
)
from clinic_booking.application.exceptions import ClinicApiError, ClinicApiRejectedError
from clinic_booking.application.ports.clinic_api import ClinicApiPort
from clinic_booking.application.ports.credentials import CredentialProviderPort
from clinic_booking.application.ports.workflow_store import WorkflowStorePort
from clinic_booking.application.use_cases.booking import BookingWizard
from clinic_booking.application.use_cases.reschedule import RescheduleController
from clinic_booking.application.utils.time_slots import format_time_of_day
from clinic_booking.domain.entities.appointment import Appointment
from clinic_booking.wiring.dependencies import (
    build_booking_wizard,
    build_reschedule_controller,
    get_clinic_api,
    get_clock,
    get_credentials,
    get_workflow_store,
)

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/booking/sessions", response_model=SessionSchema, status_code=201)
async def start_booking(
    req: StartSessionRequestSchema | None = None,
    api: ClinicApiPort = Depends(get_clinic_api),
    now: Callable[[], datetime] = Depends(get_clock),
    store: WorkflowStorePort = Depends(get_workflow_store),
    credentials: CredentialProviderPort = Depends(get_credentials),
):
    variant = (req or StartSessionRequestSchema()).variant
    wizard = build_booking_wizard(api, now, variant)
    await wizard.start()
    session_id = store.add(wizard, owner=credentials.get_token())
    logger.info("Booking session started", extra={"session_id": session_id})
    return session_snapshot(session_id, wizard)


@router.post("/appointments/{appointment_id}/reschedule-sessions", response_model=SessionSchema, status_code=201)
async def start_reschedule(
    appointment_id: int,
    api: ClinicApiPort = Depends(get_clinic_api),
    now: Callable[[], datetime] = Depends(get_clock),
    store: WorkflowStorePort = Depends(get_workflow_store),
    credentials: CredentialProviderPort = Depends(get_credentials),
):
    controller = build_reschedule_controller(api, now, appointment_id)
    try:
        await controller.open()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ClinicApiError as e:
        raise upstream_http_error(e)

    session_id = store.add(controller, owner=credentials.get_token())
    logger.info("Reschedule session started", extra={"session_id": session_id, "appointment_id": appointment_id})
    return session_snapshot(session_id, controller)


@router.get("/booking/sessions/{session_id}", response_model=SessionSchema)
def get_session(
    session_id: str,
    store: WorkflowStorePort = Depends(get_workflow_store),
    credentials: CredentialProviderPort = Depends(get_credentials),
):
    return session_snapshot(session_id, _load(store, session_id, credentials))


@router.post("/booking/sessions/{session_id}/reload", response_model=SessionSchema)
async def reload_session(
    session_id: str,
    store: WorkflowStorePort = Depends(get_workflow_store),
    credentials: CredentialProviderPort = Depends(get_credentials),
):
    wizard = _load(store, session_id, credentials)
    try:
        await wizard.retry_failed_loads()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session_snapshot(session_id, wizard)


@router.patch("/booking/sessions/{session_id}/selection", response_model=SessionSchema)
async def update_selection(
    session_id: str,
    req: SelectionPatchSchema,
    store: WorkflowStorePort = Depends(get_workflow_store),
    credentials: CredentialProviderPort = Depends(get_credentials),
):
    wizard = _load(store, session_id, credentials)
    fields = req.model_fields_set
    try:
        if "specialty_id" in fields:
            await wizard.select_specialty(req.specialty_id)
        if "doctor_id" in fields and req.doctor_id is not None:
            await wizard.select_doctor(req.doctor_id)
        if "service_id" in fields:
            await wizard.select_service(req.service_id)
        if "date" in fields and req.date is not None:
            await wizard.select_date(req.date)
        if "time" in fields and req.time is not None:
            wizard.select_time(req.time)
        if "notes" in fields:
            wizard.set_notes(req.notes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session_snapshot(session_id, wizard)


@router.post("/booking/sessions/{session_id}/advance", response_model=StepResponseSchema)
def advance(
    session_id: str,
    store: WorkflowStorePort = Depends(get_workflow_store),
    credentials: CredentialProviderPort = Depends(get_credentials),
):
    wizard = _load(store, session_id, credentials)
    moved = wizard.advance()
    return StepResponseSchema(moved=moved, session=session_snapshot(session_id, wizard))


@router.post("/booking/sessions/{session_id}/back", response_model=StepResponseSchema)
def back(
    session_id: str,
    store: WorkflowStorePort = Depends(get_workflow_store),
    credentials: CredentialProviderPort = Depends(get_credentials),
):
    wizard = _load(store, session_id, credentials)
    moved = wizard.back()
    return StepResponseSchema(moved=moved, session=session_snapshot(session_id, wizard))


@router.post("/booking/sessions/{session_id}/submit", response_model=SubmitResponseSchema)
async def submit(
    session_id: str,
    req: SubmitRequestSchema | None = None,
    store: WorkflowStorePort = Depends(get_workflow_store),
    credentials: CredentialProviderPort = Depends(get_credentials),
):
    wizard = _load(store, session_id, credentials)
    if isinstance(wizard, RescheduleController):
        result = await wizard.submit(reason=req.reason if req else None)
    else:
        result = await wizard.submit()

    return SubmitResponseSchema(
        action=result.action,
        step=result.step,
        message=result.message,
        appointment_id=result.appointment_id,
        navigate_to=result.navigate_to,
        session=session_snapshot(session_id, wizard),
    )


def upstream_http_error(error: ClinicApiError) -> HTTPException:
    """Rejections keep the upstream status and message; everything else is a 502."""
    if isinstance(error, ClinicApiRejectedError) and error.status_code:
        return HTTPException(status_code=error.status_code, detail=error.server_message or error.message)
    return HTTPException(status_code=502, detail=str(error))


def appointment_schema(appointment: Appointment, can_reschedule: bool = False, can_cancel: bool = False) -> AppointmentSchema:
    return AppointmentSchema(
        appointment_id=appointment.appointment_id,
        doctor_id=appointment.doctor_id,
        doctor_name=appointment.doctor_name,
        specialty_name=appointment.specialty_name,
        date=appointment.date,
        time=appointment.time,
        status=appointment.status.value,
        status_label=appointment.status.label,
        notes=appointment.notes,
        can_reschedule=can_reschedule,
        can_cancel=can_cancel,
    )


def session_snapshot(session_id: str, wizard: BookingWizard) -> SessionSchema:
    s = wizard.selection
    slots = wizard.slots
    catalog = wizard.catalog
    original = wizard.original if isinstance(wizard, RescheduleController) else None
    return SessionSchema(
        session_id=session_id,
        kind="reschedule" if isinstance(wizard, RescheduleController) else "booking",
        variant=wizard.variant,
        step=wizard.step,
        selection=SelectionSchema(
            specialty_id=s.specialty_id,
            doctor_id=s.doctor_id,
            service_id=s.service_id,
            date=s.date,
            time=s.time,
            notes=s.notes,
        ),
        slots=SlotsSchema(
            status=slots.status,
            doctor_id=slots.doctor_id,
            date=slots.date,
            slots=list(slots.slots),
            message=slots.message,
            generation=slots.generation,
        ),
        specialties=[SpecialtySchema(id=x.id, name=x.name, description=x.description) for x in catalog.specialties],
        doctors=[
            DoctorSchema(
                id=d.id,
                name=d.name,
                specialty_id=d.specialty_id,
                specialty_name=d.specialty_name,
                image_url=d.image_url,
            )
            for d in wizard.doctors
        ],
        services=[ServiceSchema(id=x.id, name=x.name, price=x.price) for x in catalog.services],
        upcoming_shifts=[
            WorkShiftSchema(
                shift_id=w.shift_id,
                date=w.date,
                start_time=format_time_of_day(w.start_time),
                end_time=format_time_of_day(w.end_time),
            )
            for w in wizard.upcoming_shifts
        ],
        catalog_errors=dict(catalog.errors),
        upcoming_error=wizard.upcoming_error,
        error=wizard.error,
        appointment_id=wizard.appointment_id,
        original=appointment_schema(original) if original else None,
    )


def _load(store: WorkflowStorePort, session_id: str, credentials: CredentialProviderPort) -> BookingWizard:
    # sessions belong to the bearer token that started them; other callers see 404
    wizard = store.get(session_id, owner=credentials.get_token())
    if wizard is None:
        raise HTTPException(status_code=404, detail="Booking session not found")
    return wizard

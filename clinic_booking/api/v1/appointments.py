from fastapi import APIRouter, Depends, HTTPException

from clinic_booking.api.v1.booking import appointment_schema, upstream_http_error
from clinic_booking.api.v1.schemas import (
    AppointmentSchema,
    CancelRequestSchema,
    CancelResponseSchema,
    HistoryEntrySchema,
)
from clinic_booking.application.exceptions import ClinicApiError
from clinic_booking.application.use_cases.appointments import AppointmentActions
from clinic_booking.wiring.dependencies import get_appointment_actions

router = APIRouter()


@router.get("/appointments", response_model=list[AppointmentSchema])
async def list_appointments(actions: AppointmentActions = Depends(get_appointment_actions)):
    try:
        appointments = await actions.list_mine()
    except ClinicApiError as e:
        raise upstream_http_error(e)
    return [
        appointment_schema(a, can_reschedule=actions.can_reschedule(a), can_cancel=actions.can_cancel(a))
        for a in appointments
    ]


@router.get("/appointments/{appointment_id}", response_model=AppointmentSchema)
async def get_appointment(appointment_id: int, actions: AppointmentActions = Depends(get_appointment_actions)):
    try:
        appointment = await actions.get(appointment_id)
    except ClinicApiError as e:
        raise upstream_http_error(e)
    return appointment_schema(
        appointment,
        can_reschedule=actions.can_reschedule(appointment),
        can_cancel=actions.can_cancel(appointment),
    )


@router.get("/appointments/{appointment_id}/history", response_model=list[HistoryEntrySchema])
async def get_history(appointment_id: int, actions: AppointmentActions = Depends(get_appointment_actions)):
    try:
        entries = await actions.history(appointment_id)
    except ClinicApiError as e:
        raise upstream_http_error(e)
    return [
        HistoryEntrySchema(
            history_id=h.history_id,
            old_date=h.old_date,
            old_time=h.old_time,
            new_date=h.new_date,
            new_time=h.new_time,
            old_doctor_name=h.old_doctor_name,
            new_doctor_name=h.new_doctor_name,
            changed_by=h.changed_by,
            changed_at=h.changed_at,
            change_reason=h.change_reason,
        )
        for h in entries
    ]


@router.post("/appointments/{appointment_id}/cancel", response_model=CancelResponseSchema)
async def cancel_appointment(
    appointment_id: int,
    req: CancelRequestSchema | None = None,
    actions: AppointmentActions = Depends(get_appointment_actions),
):
    result = await actions.cancel(appointment_id, confirmed=bool(req and req.confirm))
    if result.action == "needs_confirmation":
        raise HTTPException(status_code=400, detail=result.message)
    if result.action == "failed":
        raise HTTPException(status_code=result.status_code or 502, detail=result.message)
    return CancelResponseSchema(action=result.action, message=result.message)

# clinic/routers/appointments.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.schemas import MessageResponse
from clinic.db.sql import get_session
from clinic.modules.appointments.schemas import (
    AppointmentCreateRequest,
    AppointmentEnvelope,
    AppointmentFilters,
    AppointmentList,
    AppointmentUpdateRequest,
)
from clinic.modules.appointments.service import (
    AppointmentNotFound,
    ConcurrentUpdate,
    InvalidTransition,
    ProviderNotFound,
    SlotConflict,
    book_appointment,
    delete_appointment,
    get_appointment,
    list_appointments,
    update_appointment,
)
from clinic.services import ClinicServices, get_services

router = APIRouter(tags=["appointments"])


@router.post(
    "/appointments",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
    responses={
        201: {"description": "Appointment booked (status Scheduled)"},
        404: {"description": "Provider not found"},
        409: {"description": "Provider is busy at that time"},
        422: {"description": "Missing required field"},
    },
)
async def appointments_create(
    payload: AppointmentCreateRequest,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    services: ClinicServices = Depends(get_services),
):
    """
    The booking is committed before the response is sent; the calendar event
    and the provider email run afterwards and never change the response.
    """
    try:
        appt = await book_appointment(session, payload, services, background)
    except ProviderNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="provider_not_found",
        )
    except SlotConflict:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The provider is not available at that time. Please choose a different slot.",
        )
    return AppointmentEnvelope(appointment=appt)


@router.get(
    "/appointments",
    response_model=AppointmentList,
    summary="List appointments (filters are combined with AND)",
)
async def appointments_list(
    role: Optional[str] = Query(None),
    name: Optional[str] = Query(None),
    provider_role: Optional[str] = Query(None, alias="providerRole"),
    provider_name: Optional[str] = Query(None, alias="providerName"),
    session: AsyncSession = Depends(get_session),
):
    filters = AppointmentFilters(
        role=role.upper() if role else None,
        name=name or None,
        provider_role=provider_role.upper() if provider_role else None,
        provider_name=provider_name or None,
    )
    return await list_appointments(session, filters)


@router.get(
    "/appointments/{appointment_id}",
    response_model=AppointmentEnvelope,
    summary="Get one appointment",
)
async def appointments_get(
    appointment_id: str,
    session: AsyncSession = Depends(get_session),
):
    try:
        appt = await get_appointment(session, appointment_id)
    except AppointmentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="appointment_not_found",
        )
    return AppointmentEnvelope(appointment=appt)


@router.put(
    "/appointments/{appointment_id}",
    response_model=AppointmentEnvelope,
    summary="Merge fields into an appointment (status, notes, ...)",
    responses={
        404: {"description": "Appointment not found"},
        409: {"description": "Illegal status change or concurrent modification"},
    },
)
async def appointments_update(
    appointment_id: str,
    payload: AppointmentUpdateRequest,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    services: ClinicServices = Depends(get_services),
):
    try:
        appt = await update_appointment(session, appointment_id, payload, services, background)
    except AppointmentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="appointment_not_found",
        )
    except (InvalidTransition, ConcurrentUpdate) as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    return AppointmentEnvelope(appointment=appt)


@router.delete(
    "/appointments/{appointment_id}",
    response_model=MessageResponse,
    summary="Hard-delete an appointment",
)
async def appointments_delete(
    appointment_id: str,
    session: AsyncSession = Depends(get_session),
):
    try:
        await delete_appointment(session, appointment_id)
    except AppointmentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="appointment_not_found",
        )
    return MessageResponse(message="Appointment deleted")

# clinic/modules/appointments/service.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from clinic.core.config import settings
from clinic.core.errors import ConflictError, NotFoundError
from clinic.modules.appointments import repository as appointments_repo
from clinic.modules.appointments.models import Appointment, ApptStatus, new_appointment_id
from clinic.modules.appointments.schemas import (
    AppointmentCreateRequest,
    AppointmentFilters,
    AppointmentList,
    AppointmentPublic,
    AppointmentUpdateRequest,
)
from clinic.modules.appointments.transitions import can_transition
from clinic.modules.calendar.service import slot_interval
from clinic.modules.notifications.channels import Recipient
from clinic.modules.notifications.templates import NotificationEvent
from clinic.modules.users import repository as users_repo
from clinic.modules.users.models import UserRole
from clinic.services import ClinicServices

logger = logging.getLogger(__name__)


# Custom errors, mapped to HTTP by the router
class ProviderNotFound(NotFoundError):
    """
    No provider matches (provider_name, provider_role)
    """


class AppointmentNotFound(NotFoundError):
    """
    No appointment found
    """


class SlotConflict(ConflictError):
    """
    Provider already has a commitment in the requested slot
    """


class InvalidTransition(ConflictError):
    """
    Requested status is not reachable from the current one
    """


class ConcurrentUpdate(ConflictError):
    """
    Another request modified the appointment between read and write
    """


# New status -> notification sent to the patient
STATUS_EVENTS = {
    ApptStatus.APPROVED: NotificationEvent.APPROVED,
    ApptStatus.CONFIRMED: NotificationEvent.APPROVED,
    ApptStatus.REJECTED: NotificationEvent.REJECTED,
}


def _to_public(appt: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(appt)


def _patient(appt: Appointment) -> Recipient:
    return Recipient(name=appt.patient_name, email=appt.patient_email, phone=appt.patient_phone)


# BOOK
async def book_appointment(
    session: AsyncSession,
    payload: AppointmentCreateRequest,
    services: ClinicServices,
    background: BackgroundTasks,
) -> AppointmentPublic:
    """
    Book an appointment.

    Logic:
    - Resolve the provider by (name, role), or the first provider of the role.
    - Ask the availability checker about [date+time, +SLOT_MINUTES).
    - Busy -> SlotConflict, nothing written.
    - Free -> insert as Scheduled and commit before returning.
    - Calendar event and provider notification run after the response.
    """
    provider = await users_repo.find_provider(
        session,
        role=UserRole(payload.provider_role.value),
        name=payload.provider_name,
    )
    if provider is None:
        raise ProviderNotFound("provider_not_found")

    start, end = slot_interval(payload.date, payload.time, settings.TIME_ZONE, settings.SLOT_MINUTES)
    if await services.availability.is_busy(provider, start, end):
        logger.info(
            "Booking rejected: provider %s is already busy at %s", provider.name, start.isoformat()
        )
        raise SlotConflict("slot_unavailable")

    appt = Appointment(
        id=new_appointment_id(),
        patient_name=payload.patient_name,
        patient_email=payload.patient_email,
        patient_phone=payload.patient_phone,
        provider_role=provider.role,
        provider_name=provider.name,
        date=payload.date,
        time=payload.time,
        status=ApptStatus.SCHEDULED.value,
        notes=payload.notes,
    )
    await appointments_repo.add(session, appt)
    await session.commit()
    logger.info("Appointment %s booked with %s on %s", appt.id, provider.name, start.isoformat())

    provider_contact = Recipient(name=provider.name, email=provider.email, phone=provider.phone)
    background.add_task(run_booking_followups, services, appt, provider_contact)
    return _to_public(appt)


async def run_booking_followups(
    services: ClinicServices, appt: Appointment, provider: Recipient
) -> None:
    """
    Calendar event, then provider notification. Each step is independent.
    """
    try:
        await services.calendar.create_event(appt)
    except Exception:
        logger.exception("Calendar sync failed for appointment %s", appt.id)

    try:
        await services.notifier.dispatch(appt, NotificationEvent.CREATED, provider)
    except Exception:
        logger.exception("Provider notification failed for appointment %s", appt.id)


# UPDATE
async def update_appointment(
    session: AsyncSession,
    appointment_id: str,
    payload: AppointmentUpdateRequest,
    services: ClinicServices,
    background: BackgroundTasks,
) -> AppointmentPublic:
    """
    Shallow-merge the provided fields onto the stored appointment.

    - Fields absent from the payload keep their value.
    - A status change must be allowed by the transition table.
    - Rejection notes travel in the same write as the status.
    - Approved/Confirmed/Rejected trigger a patient notification after the response.
    """
    appt = await appointments_repo.get_by_id(session, appointment_id)
    if appt is None:
        raise AppointmentNotFound("appointment_not_found")

    changes = payload.changes()

    new_status: Optional[ApptStatus] = changes.get("status")
    if new_status is not None:
        current = _parse_status(appt.status)
        if current is not None and not can_transition(current, new_status):
            raise InvalidTransition(f"illegal_transition: {appt.status} -> {new_status.value}")
        changes["status"] = new_status.value
    if "provider_role" in changes:
        changes["provider_role"] = changes["provider_role"].value

    for field, value in changes.items():
        setattr(appt, field, value)

    try:
        await session.commit()
    except StaleDataError as exc:
        await session.rollback()
        raise ConcurrentUpdate("appointment_modified_concurrently") from exc
    await session.refresh(appt)

    if changes:
        logger.info("Appointment %s updated: %s", appt.id, sorted(changes))

    event = STATUS_EVENTS.get(new_status) if new_status is not None else None
    if event is not None:
        background.add_task(
            run_status_notifications, services, appt, event, changes.get("notes", "")
        )
    return _to_public(appt)


def _parse_status(value: str) -> Optional[ApptStatus]:
    try:
        return ApptStatus.parse(value)
    except ValueError:
        # Legacy free-form status: no table entry to enforce
        logger.warning("Appointment has unknown status %r; transition not checked", value)
        return None


async def run_status_notifications(
    services: ClinicServices, appt: Appointment, event: NotificationEvent, reason: str = ""
) -> None:
    try:
        await services.notifier.dispatch(appt, event, _patient(appt), reason=reason)
    except Exception:
        logger.exception("Status notification failed for appointment %s", appt.id)


# READ
async def get_appointment(session: AsyncSession, appointment_id: str) -> AppointmentPublic:
    appt = await appointments_repo.get_by_id(session, appointment_id)
    if appt is None:
        raise AppointmentNotFound("appointment_not_found")
    return _to_public(appt)


async def list_appointments(session: AsyncSession, filters: AppointmentFilters) -> AppointmentList:
    rows = await appointments_repo.list_filtered(session, filters)
    return AppointmentList(appointments=[_to_public(a) for a in rows])


# DELETE
async def delete_appointment(session: AsyncSession, appointment_id: str) -> None:
    """
    Hard delete. A second delete of the same id raises AppointmentNotFound.
    """
    deleted = await appointments_repo.delete_by_id(session, appointment_id)
    if not deleted:
        raise AppointmentNotFound("appointment_not_found")
    await session.commit()
    logger.info("Appointment %s deleted", appointment_id)

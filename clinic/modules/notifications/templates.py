# clinic/modules/notifications/templates.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from html import escape
from typing import Any, Dict

from clinic.modules.appointments.models import Appointment

SYSTEM_NAME = "Clinic Appointment System"


class NotificationEvent(str, Enum):
    CREATED = "appointment_created"
    APPROVED = "appointment_approved"
    REJECTED = "appointment_rejected"


@dataclass(frozen=True)
class RenderedMessage:
    event: NotificationEvent
    subject: str
    text: str
    html: str
    sms: str
    data: Dict[str, Any] = field(default_factory=dict)


def _details(appt: Appointment, **extra: Any) -> Dict[str, Any]:
    details = {
        "appointment_id": appt.id,
        "provider_name": appt.provider_name,
        "provider_role": appt.provider_role,
        "date": appt.date.isoformat(),
        "time": appt.time.strftime("%H:%M"),
        "status": appt.status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    details.update(extra)
    return details


def _when(appt: Appointment) -> str:
    return f"{appt.date.isoformat()} at {appt.time.strftime('%H:%M')}"


def _html(paragraphs: list[str]) -> str:
    body = "".join(f"<p>{escape(p)}</p>" for p in paragraphs)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f"{body}</div>"
    )


def render_created(appt: Appointment) -> RenderedMessage:
    """New booking, addressed to the provider."""
    paragraphs = [
        f"Dear {appt.provider_name},",
        "A patient has booked an appointment and requires your review.",
        f"Patient: {appt.patient_name}",
        f"Date & Time: {_when(appt)}",
        "Please log in to the clinic system to check the details and update the status.",
        f"Sincerely, {SYSTEM_NAME}",
    ]
    return RenderedMessage(
        event=NotificationEvent.CREATED,
        subject=f"New Appointment Request: {appt.patient_name} ({appt.date.isoformat()})",
        text="\n\n".join(paragraphs),
        html=_html(paragraphs),
        sms=f"New appointment request from {appt.patient_name} on {_when(appt)}.",
        data=_details(appt),
    )


def render_approved(appt: Appointment) -> RenderedMessage:
    sms = (
        f"Hello {appt.patient_name}, your appointment on {_when(appt)} with "
        f"{appt.provider_name} has been APPROVED. Please come on time and bring "
        "your ID and necessary documents. Thank you."
    )
    paragraphs = [
        f"Hello {appt.patient_name},",
        f"Your appointment with {appt.provider_name} ({appt.provider_role}) "
        f"has been approved for {_when(appt)}.",
        "Please arrive 5 minutes early and bring your ID and necessary documents.",
        f"Sincerely, {SYSTEM_NAME}",
    ]
    return RenderedMessage(
        event=NotificationEvent.APPROVED,
        subject=f"Appointment Approved: {appt.date.isoformat()}",
        text="\n\n".join(paragraphs),
        html=_html(paragraphs),
        sms=sms,
        data=_details(appt),
    )


def render_rejected(appt: Appointment, reason: str = "") -> RenderedMessage:
    reason_part = f" Reason: {reason}." if reason else ""
    sms = (
        f"Hello {appt.patient_name}, your appointment with {appt.provider_name} "
        f"on {appt.date.isoformat()} has been REJECTED.{reason_part} "
        "Please re-book or call the clinic for assistance."
    )
    paragraphs = [
        f"Hello {appt.patient_name},",
        f"Unfortunately, your appointment with {appt.provider_name} for "
        f"{_when(appt)} could not be confirmed.{reason_part}",
        "Please book another appointment or contact the clinic for assistance.",
        f"Sincerely, {SYSTEM_NAME}",
    ]
    return RenderedMessage(
        event=NotificationEvent.REJECTED,
        subject=f"Appointment Could Not Be Confirmed: {appt.date.isoformat()}",
        text="\n\n".join(paragraphs),
        html=_html(paragraphs),
        sms=sms,
        data=_details(appt, rejection_reason=reason),
    )


def render(event: NotificationEvent, appt: Appointment, reason: str = "") -> RenderedMessage:
    if event is NotificationEvent.CREATED:
        return render_created(appt)
    if event is NotificationEvent.APPROVED:
        return render_approved(appt)
    return render_rejected(appt, reason)

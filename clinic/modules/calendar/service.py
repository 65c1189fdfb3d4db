# clinic/modules/calendar/service.py
from __future__ import annotations

import datetime as dt
import logging
from typing import Optional, Protocol, Tuple
from zoneinfo import ZoneInfo

from clinic.modules.appointments.models import Appointment
from clinic.modules.calendar.google import GoogleCalendarClient
from clinic.modules.users.models import User

logger = logging.getLogger(__name__)


def slot_interval(
    day: dt.date, start: dt.time, tz: str, minutes: int = 30
) -> Tuple[dt.datetime, dt.datetime]:
    """[day+start, day+start+minutes) as timezone-aware datetimes."""
    begin = dt.datetime.combine(day, start, tzinfo=ZoneInfo(tz))
    return begin, begin + dt.timedelta(minutes=minutes)


class AvailabilityChecker(Protocol):
    async def is_busy(self, provider: User, start: dt.datetime, end: dt.datetime) -> bool: ...


class CalendarSync(Protocol):
    async def create_event(self, appointment: Appointment) -> Optional[str]: ...


class ClinicCalendar:
    """
    One shared clinic calendar answers availability for every provider.

    Without a configured client every slot is reported free and no events are
    created; the booking record is then the only coordination.
    """

    def __init__(
        self,
        client: Optional[GoogleCalendarClient],
        time_zone: str,
        slot_minutes: int = 30,
    ):
        self.client = client
        self.time_zone = time_zone
        self.slot_minutes = slot_minutes
        if client is None:
            logger.warning(
                "Google Calendar not configured: availability is not checked, "
                "bookings are only saved locally."
            )

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def is_busy(self, provider: User, start: dt.datetime, end: dt.datetime) -> bool:
        if self.client is None:
            return False

        try:
            busy = await self.client.freebusy(start, end)
        except Exception:
            # Fail closed: an unverifiable slot counts as taken
            logger.exception(
                "Availability check failed for %s %s-%s; treating slot as busy",
                provider.name, start.isoformat(), end.isoformat(),
            )
            return True

        if busy:
            logger.info("Provider %s is BUSY from %s to %s", provider.name, start, end)
            return True
        logger.info("Provider %s is FREE from %s to %s", provider.name, start, end)
        return False

    async def create_event(self, appointment: Appointment) -> Optional[str]:
        """
        Mirror a booking on the calendar. Returns the event id, None on failure.
        """
        if self.client is None:
            logger.info("Calendar event skipped for %s: calendar not configured", appointment.id)
            return None

        start, end = slot_interval(
            appointment.date, appointment.time, self.time_zone, self.slot_minutes
        )
        event = {
            "summary": f"{appointment.provider_role} Appt: {appointment.patient_name}",
            "description": (
                "Booked via the clinic appointment system.\n"
                f"Patient Email: {appointment.patient_email}\n"
                f"Patient Phone: {appointment.patient_phone}\n"
                f"Notes: {appointment.notes or 'None'}"
            ),
            "start": {"dateTime": start.isoformat(), "timeZone": self.time_zone},
            "end": {"dateTime": end.isoformat(), "timeZone": self.time_zone},
            "attendees": [],
        }

        try:
            created = await self.client.insert_event(event)
        except Exception:
            logger.exception("Failed to book event on Google Calendar for %s", appointment.id)
            return None

        event_id = created.get("id")
        logger.info("Google Calendar event created for %s: %s", appointment.id, created.get("htmlLink"))
        return event_id

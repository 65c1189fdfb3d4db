import datetime as dt

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from clinic.modules.appointments.models import Appointment
from clinic.modules.calendar.google import (
    GOOGLE_CALENDAR_API,
    GOOGLE_TOKEN_URL,
    GoogleCalendarClient,
    ServiceAccountCredentials,
)
from clinic.modules.calendar.service import ClinicCalendar, slot_interval
from clinic.modules.users.models import User

CALENDAR_ID = "clinic@group.calendar.google.com"
FREEBUSY_URL = f"{GOOGLE_CALENDAR_API}/freeBusy"

SANTOS = User(username="drsantos", name="Dr. Santos", role="DENTIST")


class StaticToken:
    async def access_token(self):
        return "test-token"


@pytest.fixture
async def http():
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def calendar(http):
    client = GoogleCalendarClient(CALENDAR_ID, StaticToken(), http, time_zone="Asia/Manila")
    return ClinicCalendar(client, "Asia/Manila", 30)


def slot():
    return slot_interval(dt.date(2025, 12, 3), dt.time(9, 0), "Asia/Manila", 30)


def appointment():
    return Appointment(
        id="A-1001",
        patient_name="Kylle Cruz",
        patient_email="kylle.mercado@csu.local",
        patient_phone="+639669474682",
        provider_role="DENTIST",
        provider_name="Dr. Santos",
        date=dt.date(2025, 12, 3),
        time=dt.time(9, 0),
        status="Scheduled",
        notes="",
    )


def test_slot_interval_is_zone_aware():
    start, end = slot()
    assert start.isoformat() == "2025-12-03T09:00:00+08:00"
    assert end - start == dt.timedelta(minutes=30)


async def test_unconfigured_calendar_reports_free():
    cal = ClinicCalendar(None, "Asia/Manila")
    assert cal.configured is False
    assert await cal.is_busy(SANTOS, *slot()) is False
    assert await cal.create_event(appointment()) is None


async def test_busy_interval(calendar, respx_mock):
    route = respx_mock.post(FREEBUSY_URL).mock(
        return_value=httpx.Response(
            200,
            json={"calendars": {CALENDAR_ID: {"busy": [{"start": "x", "end": "y"}]}}},
        )
    )

    assert await calendar.is_busy(SANTOS, *slot()) is True

    sent = route.calls.last.request
    assert sent.headers["Authorization"] == "Bearer test-token"
    assert b'"timeMin":"2025-12-03T09:00:00+08:00"' in sent.content.replace(b" ", b"")


async def test_free_interval(calendar, respx_mock):
    respx_mock.post(FREEBUSY_URL).mock(
        return_value=httpx.Response(200, json={"calendars": {CALENDAR_ID: {"busy": []}}})
    )
    assert await calendar.is_busy(SANTOS, *slot()) is False


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="backend error"),
        httpx.Response(200, json={"calendars": {}}),
        httpx.Response(200, json={"calendars": {CALENDAR_ID: {"errors": [{"reason": "notFound"}]}}}),
    ],
)
async def test_fails_closed_on_bad_response(calendar, respx_mock, response):
    respx_mock.post(FREEBUSY_URL).mock(return_value=response)
    assert await calendar.is_busy(SANTOS, *slot()) is True


async def test_fails_closed_on_timeout(calendar, respx_mock):
    respx_mock.post(FREEBUSY_URL).mock(side_effect=httpx.ConnectTimeout("slow"))
    assert await calendar.is_busy(SANTOS, *slot()) is True


async def test_create_event(calendar, respx_mock):
    route = respx_mock.post(url__regex=r".*/calendars/.+/events.*").mock(
        return_value=httpx.Response(200, json={"id": "evt-1", "htmlLink": "https://cal/evt-1"})
    )

    assert await calendar.create_event(appointment()) == "evt-1"

    request = route.calls.last.request
    assert request.url.params["sendUpdates"] == "none"
    assert b"DENTIST Appt: Kylle Cruz" in request.content


async def test_create_event_failure_returns_none(calendar, respx_mock):
    respx_mock.post(url__regex=r".*/events.*").mock(return_value=httpx.Response(403))
    assert await calendar.create_event(appointment()) is None


async def test_service_account_token_is_cached(http, respx_mock):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    creds = ServiceAccountCredentials(
        {"client_email": "svc@project.iam.gserviceaccount.com", "private_key": pem, "private_key_id": "k1"},
        http,
    )
    route = respx_mock.post(GOOGLE_TOKEN_URL).mock(
        return_value=httpx.Response(200, json={"access_token": "abc", "expires_in": 3600})
    )

    assert await creds.access_token() == "abc"
    assert await creds.access_token() == "abc"
    assert route.call_count == 1
    assert b"grant_type=urn" in route.calls.last.request.content

# clinic/services.py
"""
Service handles used by the workflows.

Built once by the application lifespan and injected into request handlers;
tests replace them through ``app.state.services`` or dependency overrides.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from clinic.core.config import Settings, settings
from clinic.modules.calendar.google import GoogleCalendarClient, ServiceAccountCredentials
from clinic.modules.calendar.service import AvailabilityChecker, CalendarSync, ClinicCalendar
from clinic.modules.notifications.channels import EmailChannel, SmsChannel, SyncChannel
from clinic.modules.notifications.notifier import Notifier

logger = logging.getLogger(__name__)


@dataclass
class ClinicServices:
    availability: AvailabilityChecker
    calendar: CalendarSync
    notifier: Notifier
    http: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        if self.http is not None:
            await self.http.aclose()


def build_services(cfg: Settings = settings) -> ClinicServices:
    http = httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))

    google_client: Optional[GoogleCalendarClient] = None
    if cfg.GOOGLE_CALENDAR_ID and cfg.GOOGLE_SERVICE_ACCOUNT_FILE:
        credentials = ServiceAccountCredentials.from_file(
            cfg.GOOGLE_SERVICE_ACCOUNT_FILE, http, timeout=cfg.GOOGLE_API_TIMEOUT
        )
        google_client = GoogleCalendarClient(
            cfg.GOOGLE_CALENDAR_ID,
            credentials,
            http,
            time_zone=cfg.TIME_ZONE,
            timeout=cfg.GOOGLE_API_TIMEOUT,
        )
    calendar = ClinicCalendar(google_client, cfg.TIME_ZONE, cfg.SLOT_MINUTES)

    notifier = Notifier(
        [
            EmailChannel(
                host=cfg.SMTP_HOST,
                port=cfg.SMTP_PORT,
                username=cfg.SMTP_USER,
                password=cfg.SMTP_PASSWORD,
                sender=cfg.SMTP_FROM,
                timeout=cfg.SMTP_TIMEOUT,
                max_attempts=cfg.EMAIL_MAX_ATTEMPTS,
                backoff_seconds=cfg.EMAIL_RETRY_BACKOFF_SECONDS,
            ),
            SmsChannel(
                base_url=cfg.INFOBIP_BASE_URL,
                api_key=cfg.INFOBIP_API_KEY,
                sender=cfg.INFOBIP_SENDER,
                http=http,
                timeout=cfg.SMS_TIMEOUT,
            ),
            SyncChannel(
                base_url=cfg.SIMS_API_URL,
                api_key=cfg.SIMS_API_KEY,
                http=http,
                timeout=cfg.SIMS_TIMEOUT,
            ),
        ],
        country_code=cfg.SMS_COUNTRY_CODE,
        subscriber_digits=cfg.SMS_SUBSCRIBER_DIGITS,
    )

    return ClinicServices(availability=calendar, calendar=calendar, notifier=notifier, http=http)


def get_services(request: Request) -> ClinicServices:
    return request.app.state.services

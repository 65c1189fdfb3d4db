"""
Google Calendar REST client.

Authenticates as a service account: a self-signed RS256 assertion is
exchanged for a bearer token, which is cached until shortly before expiry.
"""
from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from jose import jwt

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

# Refresh this many seconds before the token actually expires
TOKEN_SKEW_SECONDS = 300


class CalendarError(Exception):
    """Google Calendar call failed or returned an unusable payload."""


class ServiceAccountCredentials:
    def __init__(self, info: Dict[str, Any], http: httpx.AsyncClient, timeout: float = 5.0):
        self.client_email: str = info["client_email"]
        self.private_key: str = info["private_key"]
        self.private_key_id: Optional[str] = info.get("private_key_id")
        self.token_uri: str = info.get("token_uri") or GOOGLE_TOKEN_URL
        self.http = http
        self.timeout = timeout
        self._token: Optional[str] = None
        self._expires_at: float = 0.0

    @classmethod
    def from_file(
        cls, path: str | Path, http: httpx.AsyncClient, timeout: float = 5.0
    ) -> "ServiceAccountCredentials":
        info = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls(info, http, timeout)

    def _assertion(self) -> str:
        now = int(time.time())
        claims = {
            "iss": self.client_email,
            "scope": CALENDAR_SCOPE,
            "aud": self.token_uri,
            "iat": now,
            "exp": now + 3600,
        }
        headers = {"kid": self.private_key_id} if self.private_key_id else None
        return jwt.encode(claims, self.private_key, algorithm="RS256", headers=headers)

    async def access_token(self) -> str:
        if self._token and time.time() < self._expires_at - TOKEN_SKEW_SECONDS:
            return self._token

        try:
            response = await self.http.post(
                self.token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": self._assertion()},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise CalendarError(f"token request failed: {exc}") from exc

        if response.status_code != 200:
            raise CalendarError(f"token request rejected: {response.status_code} {response.text}")

        tokens = response.json()
        token = tokens.get("access_token")
        if not token:
            raise CalendarError("no access_token in token response")

        self._token = token
        self._expires_at = time.time() + int(tokens.get("expires_in", 3600))
        logger.info("Google Calendar token refreshed for %s", self.client_email)
        return token


class GoogleCalendarClient:
    def __init__(
        self,
        calendar_id: str,
        credentials: ServiceAccountCredentials,
        http: httpx.AsyncClient,
        time_zone: str,
        timeout: float = 5.0,
    ):
        self.calendar_id = calendar_id
        self.credentials = credentials
        self.http = http
        self.time_zone = time_zone
        self.timeout = timeout

    async def _post(self, url: str, payload: Dict[str, Any], params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        token = await self.credentials.access_token()
        try:
            response = await self.http.post(
                url,
                headers={"Authorization": f"Bearer {token}"},
                json=payload,
                params=params,
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise CalendarError(f"request to {url} failed: {exc}") from exc

        if response.status_code not in (200, 201):
            raise CalendarError(f"{url} returned {response.status_code}: {response.text}")
        return response.json()

    async def freebusy(self, start: datetime, end: datetime) -> List[Dict[str, str]]:
        """
        Busy intervals of the calendar within [start, end).
        """
        data = await self._post(
            f"{GOOGLE_CALENDAR_API}/freeBusy",
            {
                "timeMin": start.isoformat(),
                "timeMax": end.isoformat(),
                "timeZone": self.time_zone,
                "items": [{"id": self.calendar_id}],
            },
        )
        entry = (data.get("calendars") or {}).get(self.calendar_id)
        if entry is None:
            raise CalendarError(f"calendar {self.calendar_id} missing from freebusy response")
        if entry.get("errors"):
            raise CalendarError(f"freebusy errors: {entry['errors']}")
        return list(entry.get("busy") or [])

    async def insert_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        return await self._post(
            f"{GOOGLE_CALENDAR_API}/calendars/{quote(self.calendar_id, safe='')}/events",
            event,
            params={"sendUpdates": "none"},
        )

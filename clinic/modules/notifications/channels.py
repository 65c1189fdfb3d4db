"""
Notification channels.

Every channel implements ``send(recipient, message) -> bool`` and never
raises: failures are logged and reported as False.
"""
from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

import httpx
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    name: str
    email: str = ""
    phone: str = ""


class Channel(Protocol):
    name: str

    @property
    def configured(self) -> bool: ...

    async def send(self, recipient: Recipient, message) -> bool: ...


# =====
# Email
# =====

class EmailChannel:
    """SMTP email with bounded retries and linear backoff."""

    name = "email"

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds

    @property
    def configured(self) -> bool:
        return bool(self.host and self.username and self.password and self.sender)

    def _build(self, to: str, message) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.attach(MIMEText(message.text, "plain"))
        msg.attach(MIMEText(message.html, "html"))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        """Blocking SMTP exchange; runs in the threadpool."""
        if self.port == 465:
            server = smtplib.SMTP_SSL(
                self.host, self.port, context=ssl.create_default_context(), timeout=self.timeout
            )
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with server:
            if self.port != 465:
                server.starttls(context=ssl.create_default_context())
            server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, recipient: Recipient, message) -> bool:
        if not self.configured:
            logger.info("Email skipped (%s): SMTP not configured", message.event.value)
            return False
        if not recipient.email:
            logger.info("Email skipped (%s): no address for %s", message.event.value, recipient.name)
            return False

        msg = self._build(recipient.email, message)
        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.info("Sending email attempt %d/%d to %s", attempt, self.max_attempts, recipient.email)
                await run_in_threadpool(self._deliver, msg)
                logger.info("Email sent to %s (%s)", recipient.email, message.event.value)
                return True
            except (smtplib.SMTPAuthenticationError, smtplib.SMTPRecipientsRefused) as exc:
                # Retrying cannot fix bad credentials or a refused address
                logger.error("Email to %s failed permanently: %s", recipient.email, exc)
                return False
            except (smtplib.SMTPException, OSError) as exc:
                logger.warning("Email attempt %d to %s failed: %s", attempt, recipient.email, exc)
                if attempt == self.max_attempts:
                    logger.error("All %d email attempts to %s failed", self.max_attempts, recipient.email)
                    return False
                await asyncio.sleep(self.backoff_seconds * attempt)
        return False


# ===
# SMS
# ===

# Infobip status groups: 1 PENDING, 2 UNDELIVERABLE, 3 DELIVERED, 4 EXPIRED, 5 REJECTED
INFOBIP_OK_GROUPS = {1, 3}


class SmsChannel:
    """Infobip single-text SMS. Expects an already normalized +<country> number."""

    name = "sms"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        sender: str,
        http: httpx.AsyncClient,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.sender = sender
        self.http = http
        self.timeout = timeout
        if not self.configured:
            logger.info("Infobip not configured: SMS notifications will be skipped.")

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key and self.sender)

    async def send(self, recipient: Recipient, message) -> bool:
        if not self.configured:
            return False
        if not recipient.phone:
            logger.info("SMS skipped (%s): no phone for %s", message.event.value, recipient.name)
            return False

        try:
            response = await self.http.post(
                f"{self.base_url}/sms/2/text/single",
                headers={
                    "Authorization": f"App {self.api_key}",
                    "Accept": "application/json",
                },
                json={"from": self.sender, "to": recipient.phone, "text": message.sms},
                timeout=self.timeout,
            )
            result = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Infobip API request to %s failed: %s", recipient.phone, exc)
            return False

        messages = result.get("messages") if isinstance(result, dict) else None
        status = ((messages or [{}])[0] or {}).get("status") or {}
        group_id = status.get("groupId")
        if response.is_success and group_id in INFOBIP_OK_GROUPS:
            logger.info("Infobip SMS accepted (group %s) for %s", group_id, recipient.phone)
            return True

        logger.error(
            "Infobip SMS to %s failed: %s %s",
            recipient.phone,
            status.get("name", f"HTTP {response.status_code}"),
            status.get("description", ""),
        )
        return False


# ===========================
# Student information system
# ===========================

class SyncChannel:
    """Pushes the notification into the student information system inbox."""

    name = "sync"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        http: httpx.AsyncClient,
        timeout: float = 5.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.http = http
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def send(self, recipient: Recipient, message) -> bool:
        if not self.configured:
            logger.info("SIMS sync skipped (%s): API not configured", message.event.value)
            return False
        if not recipient.email:
            logger.info("SIMS sync skipped (%s): no email for %s", message.event.value, recipient.name)
            return False

        payload = {
            "recipient_email": recipient.email,
            "message_type": message.event.value,
            "subject": message.subject,
            "body": message.text,
            "appointment_id": message.data.get("appointment_id"),
            "appointment_details": message.data,
            "timestamp": message.data.get("timestamp"),
        }
        try:
            response = await self.http.post(
                f"{self.base_url}/notifications/send",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("SIMS notification to %s failed: %s", recipient.email, exc)
            return False

        logger.info("SIMS notification sent to %s (HTTP %s)", recipient.email, response.status_code)
        return True

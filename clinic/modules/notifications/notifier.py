"""
Fan-out dispatcher.

Given an appointment and an event, renders the matching template and
attempts each routed channel independently. No all-or-nothing semantics,
no ordering across channels, no deduplication of repeated events.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Mapping, Sequence

from clinic.modules.appointments.models import Appointment
from clinic.modules.notifications.channels import Channel, Recipient
from clinic.modules.notifications.phone import normalize_phone
from clinic.modules.notifications.templates import NotificationEvent, RenderedMessage, render

logger = logging.getLogger(__name__)

ROUTES: Mapping[NotificationEvent, Sequence[str]] = {
    NotificationEvent.CREATED: ("email",),
    NotificationEvent.APPROVED: ("sms", "email", "sync"),
    NotificationEvent.REJECTED: ("sms", "email", "sync"),
}


class Notifier:
    def __init__(
        self,
        channels: Sequence[Channel],
        country_code: str = "63",
        subscriber_digits: int = 10,
    ):
        self.channels: Dict[str, Channel] = {c.name: c for c in channels}
        self.country_code = country_code
        self.subscriber_digits = subscriber_digits

    async def _attempt(
        self, channel: Channel, recipient: Recipient, message: RenderedMessage
    ) -> bool:
        try:
            return await channel.send(recipient, message)
        except Exception:
            # Channels are not supposed to raise; contain it anyway
            logger.exception(
                "Channel %s raised while sending %s to %s", channel.name, message.event.value, recipient.name
            )
            return False

    async def dispatch(
        self,
        appointment: Appointment,
        event: NotificationEvent,
        recipient: Recipient,
        reason: str = "",
    ) -> Dict[str, bool]:
        """
        Returns {channel_name: delivered} for every routed channel.
        """
        message = render(event, appointment, reason)
        report: Dict[str, bool] = {}

        for name in ROUTES[event]:
            channel = self.channels.get(name)
            if channel is None:
                report[name] = False
                continue

            target = recipient
            if name == "sms":
                phone = normalize_phone(recipient.phone, self.country_code, self.subscriber_digits)
                if not phone:
                    logger.info(
                        "SMS skipped: %r is not a valid +%s number for %s",
                        recipient.phone, self.country_code, recipient.name,
                    )
                    report[name] = False
                    continue
                target = replace(recipient, phone=phone)

            report[name] = await self._attempt(channel, target, message)

        logger.info("Notification %s for %s: %s", event.value, appointment.id, report)
        return report

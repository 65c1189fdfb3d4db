# clinic/modules/notifications/phone.py
from __future__ import annotations

import re
from typing import Optional

_STRIP_RE = re.compile(r"[^\d+]")


def normalize_phone(
    raw: Optional[str], country_code: str = "63", subscriber_digits: int = 10
) -> Optional[str]:
    """
    Bring a phone number into +<country><subscriber> form.

    "0917 123 4567" and "639171234567" both give "+639171234567"; numbers
    already starting with "+" keep their own country code. Returns None
    unless the result is a number of the expected country with exactly
    ``subscriber_digits`` subscriber digits.
    """
    if not raw:
        return None

    digits = _STRIP_RE.sub("", raw.strip())
    if not digits.startswith("+"):
        digits = digits.replace("+", "")
        if digits.startswith(country_code) and len(digits) == len(country_code) + subscriber_digits:
            digits = f"+{digits}"
        else:
            if digits.startswith("0"):
                digits = digits[1:]
            digits = f"+{country_code}{digits}"

    prefix = f"+{country_code}"
    if not digits.startswith(prefix):
        return None
    subscriber = digits[len(prefix):]
    # Subscriber part must not start with the trunk prefix
    if len(subscriber) != subscriber_digits or not subscriber.isdigit() or subscriber.startswith("0"):
        return None
    return digits

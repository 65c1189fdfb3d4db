# clinic/modules/appointments/transitions.py
from __future__ import annotations

from typing import Dict, FrozenSet

from clinic.modules.appointments.models import ApptStatus

S = ApptStatus

# Rejected, Completed and Cancelled are terminal.
ALLOWED_TRANSITIONS: Dict[ApptStatus, FrozenSet[ApptStatus]] = {
    S.SCHEDULED: frozenset({S.APPROVED, S.CONFIRMED, S.REJECTED, S.COMPLETED, S.CANCELLED}),
    S.APPROVED: frozenset({S.CONFIRMED, S.COMPLETED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED}),
    S.REJECTED: frozenset(),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}


def can_transition(current: ApptStatus, new: ApptStatus) -> bool:
    """Re-asserting the current status is always allowed."""
    if current == new:
        return True
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())

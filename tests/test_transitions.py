import pytest

from clinic.core.security import hash_password, verify_password
from clinic.db.seed import fixture_snapshot
from clinic.modules.appointments.models import ApptStatus, new_appointment_id
from clinic.modules.appointments.transitions import can_transition

S = ApptStatus


@pytest.mark.parametrize(
    "current, new",
    [
        (S.SCHEDULED, S.APPROVED),
        (S.SCHEDULED, S.REJECTED),
        (S.APPROVED, S.CONFIRMED),
        (S.CONFIRMED, S.COMPLETED),
        (S.REJECTED, S.REJECTED),
    ],
)
def test_allowed(current, new):
    assert can_transition(current, new)


@pytest.mark.parametrize(
    "current, new",
    [
        (S.REJECTED, S.APPROVED),
        (S.COMPLETED, S.SCHEDULED),
        (S.CANCELLED, S.CONFIRMED),
        (S.APPROVED, S.REJECTED),
        (S.CONFIRMED, S.SCHEDULED),
    ],
)
def test_forbidden(current, new):
    assert not can_transition(current, new)


def test_status_parse_is_case_insensitive():
    assert ApptStatus.parse(" cancelled ") is S.CANCELLED
    with pytest.raises(ValueError):
        ApptStatus.parse("Postponed")


def test_status_parse_accepts_members():
    assert ApptStatus.parse(ApptStatus.APPROVED) is S.APPROVED
    assert ApptStatus.parse(S.CANCELLED) is S.CANCELLED


def test_fixture_snapshot_builds():
    snapshot = fixture_snapshot()
    assert [a.id for a in snapshot.appointments] == ["A-1001", "A-1002"]
    assert [a.status for a in snapshot.appointments] == [S.SCHEDULED, S.SCHEDULED]


def test_appointment_ids_are_unique():
    ids = {new_appointment_id() for _ in range(1000)}
    assert len(ids) == 1000
    assert all(i.startswith("A-") for i in ids)


def test_password_hashing():
    hashed = hash_password("drpass")
    assert hashed != "drpass"
    assert verify_password("drpass", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("drpass", "not-a-hash")

import datetime as dt
import json

from clinic.backup import export_snapshot, rotate_backups
from clinic.core.security import verify_password
from clinic.db.seed import seed_if_empty
from clinic.db.snapshot import Snapshot, read_snapshot
from clinic.db.sql import AsyncSessionLocal
from clinic.modules.appointments import repository as appointments_repo
from clinic.modules.appointments.models import ApptStatus
from clinic.restore import import_snapshot, latest_backup, load_snapshot


async def test_snapshot_layout(session):
    snapshot = await read_snapshot(session)

    assert [u.username for u in snapshot.users] == ["admin", "kylle", "drsantos", "drreyes"]
    assert [a.id for a in snapshot.appointments] == ["A-1001", "A-1002"]
    assert all(u.password_hash.startswith("$bcrypt-sha256$") for u in snapshot.users)


async def test_seed_skips_populated_store(session):
    assert await seed_if_empty(session) is False


async def test_backup_then_restore(db, tmp_path):
    path = tmp_path / "clinic-20251203090000.json"
    assert await export_snapshot(path) == 6

    document = json.loads(path.read_text())
    assert set(document) == {"users", "appointments"}
    assert document["appointments"][0]["patientName"] == "Kylle Cruz"

    async with AsyncSessionLocal() as s:
        await appointments_repo.delete_by_id(s, "A-1001")
        await s.commit()
        assert await appointments_repo.count(s) == 1

    await import_snapshot(load_snapshot(path))

    async with AsyncSessionLocal() as s:
        restored = await read_snapshot(s)
    assert [a.id for a in restored.appointments] == ["A-1001", "A-1002"]
    assert restored.appointments[0].time == dt.time(9, 0)


def test_rotation_and_latest(tmp_path):
    old = tmp_path / "clinic-20200101000000.json"
    recent = tmp_path / f"clinic-{dt.datetime.now():%Y%m%d%H%M%S}.json"
    unrelated = tmp_path / "clinic-notes.json"
    for f in (old, recent, unrelated):
        f.write_text("{}")

    removed = rotate_backups(tmp_path, keep_days=14)

    assert removed == [old]
    assert not old.exists() and recent.exists() and unrelated.exists()
    unrelated.unlink()
    assert latest_backup(tmp_path) == recent


def test_legacy_document_passwords_are_hashed():
    snapshot = Snapshot.model_validate(
        {
            "users": [{"username": "kylle", "password": "kylle123", "name": "Kylle Cruz", "role": "CLIENT"}],
            "appointments": [
                {
                    "id": "A-1001",
                    "patientName": "Kylle Cruz",
                    "providerRole": "DENTIST",
                    "providerName": "Dr. Santos",
                    "date": "2025-12-03",
                    "time": "09:00",
                    "status": "scheduled",
                }
            ],
        }
    )

    user = snapshot.users[0]
    assert verify_password("kylle123", user.password_hash)
    assert "kylle123" not in snapshot.model_dump_json(by_alias=True)
    assert snapshot.appointments[0].status is ApptStatus.SCHEDULED

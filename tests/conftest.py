import os
import tempfile
from pathlib import Path

# Settings and the engine are created at import time
_DB_DIR = tempfile.mkdtemp(prefix="clinic-tests-")
os.environ["SQL_DSN"] = f"sqlite+aiosqlite:///{Path(_DB_DIR) / 'clinic.db'}"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ["GOOGLE_CALENDAR_ID"] = ""
os.environ["INFOBIP_API_KEY"] = ""
os.environ["SIMS_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

from clinic.db.base import Base
from clinic.db.seed import fixture_snapshot
from clinic.db.snapshot import replace_snapshot
from clinic.db.sql import AsyncSessionLocal, engine, init_db
from clinic.main import app
from clinic.services import ClinicServices


class FakeAvailability:
    def __init__(self, busy=False):
        self.busy = busy
        self.calls = []

    async def is_busy(self, provider, start, end):
        self.calls.append((provider.name, start, end))
        if isinstance(self.busy, Exception):
            raise self.busy
        return self.busy


class FakeCalendar:
    def __init__(self):
        self.events = []

    async def create_event(self, appointment):
        self.events.append(appointment.id)
        return f"evt-{appointment.id}"


class FakeNotifier:
    def __init__(self):
        self.sent = []

    async def dispatch(self, appointment, event, recipient, reason=""):
        self.sent.append((appointment.id, event, recipient, reason))
        return {}


@pytest.fixture(scope="session")
def seed_snapshot():
    # Hashing the fixture passwords once keeps the suite fast
    return fixture_snapshot()


@pytest.fixture
async def db(seed_snapshot):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await init_db()
    async with AsyncSessionLocal() as session:
        await replace_snapshot(session, seed_snapshot)
        await session.commit()
    yield
    await engine.dispose()


@pytest.fixture
async def session(db):
    async with AsyncSessionLocal() as s:
        yield s


@pytest.fixture
def services():
    return ClinicServices(
        availability=FakeAvailability(),
        calendar=FakeCalendar(),
        notifier=FakeNotifier(),
    )


@pytest.fixture
def client(db, services):
    app.state.services = services
    with TestClient(app) as c:
        yield c
    app.state.services = None

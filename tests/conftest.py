"""
Campus Support - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import pytest_asyncio

# Set testing environment before the app reads its settings
os.environ['STORE_BACKEND'] = 'memory'
os.environ['ADMIN_RATE_LIMIT'] = '1000/minute'

from campus_support.config import Settings
from campus_support.database.store import MemoryStore
from campus_support.models import Role
from campus_support.services import SupportServices


class FakeClock:
    """Controllable clock so timestamps in assertions are exact."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RacingStore(MemoryStore):
    """MemoryStore where another writer lands `competing_payload` right before the next conditional write."""

    def __init__(self):
        super().__init__()
        self.competing_payload = None

    async def _write_raw(self, namespace, payload, expected_revision=None):
        if self.competing_payload is not None and expected_revision is not None:
            competing, self.competing_payload = self.competing_payload, None
            await super()._write_raw(namespace, competing)
        return await super()._write_raw(namespace, payload, expected_revision)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def racing_store() -> RacingStore:
    return RacingStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> Settings:
    return Settings(store_backend='memory', namespace='test-ns', staleness_hours=72)


@pytest.fixture
def services(store, settings, clock) -> SupportServices:
    return SupportServices(store, settings, clock)


@pytest_asyncio.fixture
async def people(services):
    """One profile per role, registered in the shared store"""
    student = await services.directory.register(Role.STUDENT, {"name": "Thabo Mokoena", "email": "thabo@uj.ac.za"})
    tutor = await services.directory.register(Role.TUTOR, {
        "name": "Dr. A. Ndlovu", "modules": ["ECO101", "MTH101"], "category": "Academic", "available_now": True,
    })
    counsellor = await services.directory.register(Role.COUNSELLOR, {"name": "Ms. L. Mokoena", "category": "Mental"})
    admin = await services.directory.register(Role.ADMIN, {"name": "Admin"})
    return SimpleNamespace(student=student, tutor=tutor, counsellor=counsellor, admin=admin)


@pytest_asyncio.fixture
async def pending(services, people):
    """A pending tutoring request from the student to the tutor"""
    return await services.lifecycle.request_session(
        people.student.id, people.tutor.id, {"requested_time": "2025-03-05T14:00:00Z", "module": "ECO101"}
    )

from __future__ import annotations

from datetime import datetime

import pytest

from src.timeclock_sync.timeclock_sync.attendance.ingestion import IngestionPipeline
from src.timeclock_sync.timeclock_sync.devices.connection_manager import ConnectionManager
from src.timeclock_sync.timeclock_sync.directory.model import Employee
from src.timeclock_sync.timeclock_sync.sync.service import SyncCoordinator
from helpers import (
    FakeClock,
    FakeDevice,
    FakeZK,
    InMemoryAttendanceStore,
    InMemoryEmployees,
    InMemorySettings,
    InMemoryWatermarks,
    make_families,
)


@pytest.fixture
def fixed_now() -> datetime:
    # A Friday.
    return datetime(2024, 3, 15, 12, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def store() -> InMemoryAttendanceStore:
    return InMemoryAttendanceStore()


@pytest.fixture
def watermarks() -> InMemoryWatermarks:
    return InMemoryWatermarks()


@pytest.fixture
def settings_repo() -> InMemorySettings:
    return InMemorySettings()


@pytest.fixture
def employees() -> InMemoryEmployees:
    return InMemoryEmployees(
        employees=[
            Employee(employee_id="1", company_id="acme", full_name="Alice", department="Ops"),
            Employee(employee_id="2", company_id="acme", full_name="Bao", department="Ops"),
            Employee(employee_id="3", company_id="acme", full_name="Chen", department="Sales"),
            Employee(employee_id="9", company_id="acme", full_name="Former", is_active=False),
            Employee(employee_id="1", company_id="other", full_name="Someone Else"),
        ]
    )


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def zk_class(device) -> type:
    return FakeZK.bind(device)


@pytest.fixture
def reachable() -> dict:
    return {"value": False, "calls": 0}


@pytest.fixture
def make_manager(zk_class, reachable, clock):
    created: list[ConnectionManager] = []

    def _probe(ip, port, timeout):
        reachable["calls"] += 1
        return reachable["value"]

    def _make(**kwargs) -> ConnectionManager:
        kwargs.setdefault("families", make_families(zk_class))
        kwargs.setdefault("reachability_probe", _probe)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("fetch_timeout", 2.0)
        m = ConnectionManager(**kwargs)
        created.append(m)
        return m

    yield _make
    for m in created:
        m.shutdown()


@pytest.fixture
def manager(make_manager) -> ConnectionManager:
    return make_manager()


@pytest.fixture
def pipeline(store, manager, clock) -> IngestionPipeline:
    return IngestionPipeline(store, manager, clock=clock)


@pytest.fixture
def coordinator(manager, pipeline, watermarks, clock):
    c = SyncCoordinator(manager, pipeline, watermarks, default_company_id="acme", workers=2, clock=clock)
    yield c
    c.shutdown()

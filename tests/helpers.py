"""In-memory fakes shared by the test suite."""

from __future__ import annotations

import threading
import time as time_mod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from src.timeclock_sync.timeclock_sync.attendance.model import AttendanceEvent, EventFilter, SyncStats
from src.timeclock_sync.timeclock_sync.attendance.normalizer import normalize_record
from src.timeclock_sync.timeclock_sync.core.enums import ClientFamily
from src.timeclock_sync.timeclock_sync.devices.client import ClientFamilySpec
from src.timeclock_sync.timeclock_sync.directory.model import Employee
from src.timeclock_sync.timeclock_sync.settings.model import AttendanceSettings

DEVICE_IP = "192.168.1.201"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class InMemoryAttendanceStore:
    def __init__(self):
        self.events: dict[str, AttendanceEvent] = {}
        self.insert_calls = 0
        self.fail_inserts = False
        self._lock = threading.Lock()

    def existing_keys(self, keys):
        with self._lock:
            return {k for k in keys if k in self.events}

    def insert_batch(self, events):
        if self.fail_inserts:
            raise RuntimeError("database unavailable")
        inserted = 0
        duplicates = 0
        with self._lock:
            self.insert_calls += 1
            for e in events:
                if e.unique_key in self.events:
                    duplicates += 1
                    continue
                self.events[e.unique_key] = e
                inserted += 1
        return inserted, duplicates

    def get_events(self, flt: EventFilter):
        rows = [
            e
            for e in self.events.values()
            if e.company_id == flt.company_id
            and flt.start_date <= e.date <= flt.end_date
            and (not flt.device_ip or e.device_ip == flt.device_ip)
            and (not flt.employee_id or e.employee_id == flt.employee_id)
        ]
        return sorted(rows, key=lambda e: e.timestamp)

    def get_sync_stats(self, *, company_id: str, device_ip: Optional[str] = None) -> SyncStats:
        rows = [
            e for e in self.events.values() if e.company_id == company_id and (not device_ip or e.device_ip == device_ip)
        ]
        return SyncStats(
            company_id=company_id,
            device_ip=device_ip,
            total_events=len(rows),
            oldest_event=min((e.timestamp for e in rows), default=None),
            newest_event=max((e.timestamp for e in rows), default=None),
            last_synced_at=max((e.synced_at for e in rows), default=None),
        )


class InMemoryWatermarks:
    def __init__(self):
        self.values: dict[str, datetime] = {}

    def get(self, device_ip: str) -> Optional[datetime]:
        return self.values.get(device_ip)

    def advance(self, device_ip: str, synced_to: datetime) -> datetime:
        current = self.values.get(device_ip)
        self.values[device_ip] = synced_to if current is None else max(current, synced_to)
        return self.values[device_ip]

    def all(self):
        return dict(self.values)


class InMemorySettings:
    def __init__(self, settings: Optional[AttendanceSettings] = None):
        self.settings = settings

    def get(self) -> Optional[AttendanceSettings]:
        return self.settings

    def save(self, settings: AttendanceSettings) -> None:
        self.settings = settings


@dataclass
class InMemoryEmployees:
    employees: list[Employee]

    def get(self, *, company_id: str, employee_id: str) -> Optional[Employee]:
        for e in self.employees:
            if e.company_id == company_id and e.employee_id == employee_id:
                return e
        return None

    def list_by_company(self, company_id: str, *, active_only: bool = True):
        return [e for e in self.employees if e.company_id == company_id and (e.is_active or not active_only)]


@dataclass(frozen=True)
class Punch:
    """Shape of pyzk's Attendance record."""

    user_id: str
    timestamp: datetime
    status: int = 1
    punch: int = 0
    uid: int = 0


@dataclass(frozen=True)
class DeviceUser:
    uid: int
    user_id: str
    name: str
    privilege: int = 0
    card: int = 0


class FakeDevice:
    """State shared by every FakeZK instance pointing at one terminal."""

    def __init__(self):
        self.records: list = []
        self.users: list = [DeviceUser(uid=1, user_id="1", name="Alice")]
        self.connect_error: Optional[Exception] = None
        self.udp_connect_error: Optional[Exception] = None
        self.fetch_error: Optional[Exception] = None
        self.fetch_delay: float = 0.0
        self.fetch_gate: Optional[threading.Event] = None
        self.fetch_started = threading.Event()
        self.return_none = False
        self.fetch_calls = 0
        self.disconnects = 0
        self.instances: list = []
        self.connect_delay: float = 0.0
        self.open_sockets = 0
        self.max_open_sockets = 0
        self.active_fetches = 0
        self.max_active_fetches = 0
        self.lock = threading.Lock()


class FakeZK:
    """Mimics pyzk.ZK; bind a FakeDevice via `FakeZK.bind(device)`."""

    device: FakeDevice

    def __init__(self, ip, port=4370, timeout=60, password=0, force_udp=False, ommit_ping=False, verbose=False):
        self.ip = ip
        self.port = port
        self.timeout = timeout
        self.force_udp = force_udp
        self._open = False
        self.device.instances.append(self)

    @classmethod
    def bind(cls, device: FakeDevice) -> type:
        return type("BoundFakeZK", (cls,), {"device": device})

    def connect(self):
        device = self.device
        with device.lock:
            device.open_sockets += 1
            device.max_open_sockets = max(device.max_open_sockets, device.open_sockets)
        self._open = True
        if device.connect_delay:
            time_mod.sleep(device.connect_delay)
        error = device.udp_connect_error if self.force_udp else device.connect_error
        if error is not None:
            raise error
        return self

    def disconnect(self):
        device = self.device
        with device.lock:
            device.disconnects += 1
            if self._open:
                device.open_sockets -= 1
                self._open = False

    def disable_device(self):
        return True

    def enable_device(self):
        return True

    def get_firmware_version(self):
        return "Ver 6.60"

    def get_serialnumber(self):
        return "SN-0001"

    def get_users(self):
        return list(self.device.users)

    def get_attendance(self):
        device = self.device
        with device.lock:
            device.fetch_calls += 1
            device.active_fetches += 1
            device.max_active_fetches = max(device.max_active_fetches, device.active_fetches)
        try:
            return self._attendance()
        finally:
            with device.lock:
                device.active_fetches -= 1

    def _attendance(self):
        self.device.fetch_started.set()
        if self.device.fetch_gate is not None:
            self.device.fetch_gate.wait(5)
        if self.device.fetch_delay:
            time_mod.sleep(self.device.fetch_delay)
        if self.device.fetch_error is not None:
            raise self.device.fetch_error
        if self.device.return_none:
            return None
        return list(self.device.records)


def make_families(factory: Callable, *, timeout: float = 1.0) -> list[ClientFamilySpec]:
    options = {"password": 0, "ommit_ping": True}
    return [
        ClientFamilySpec(family=ClientFamily.PRIMARY, factory=factory, timeout=timeout, options=options),
        ClientFamilySpec(
            family=ClientFamily.SECONDARY,
            factory=factory,
            timeout=timeout,
            transport={"force_udp": True},
            options=options,
            reduced=True,
        ),
    ]


def punch(user_id: str, ts: datetime, code: int = 0) -> Punch:
    return Punch(user_id=user_id, timestamp=ts, punch=code)


def event(employee_id: str, ts: datetime, *, company_id: str = "acme", device_ip: str = DEVICE_IP) -> AttendanceEvent:
    return normalize_record(
        punch(employee_id, ts), device_ip=device_ip, company_id=company_id, synced_at=datetime(2024, 3, 31, 0, 0)
    )

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_device_ip, require_port
from ..core import constants
from ..core.enums import Capability, ClientFamily, ConnectionStatus
from ..core.exceptions import CapabilityMissing, DeviceError, NetworkUnreachable, ProtocolRejected, ProtocolTimeout
from ..core.result import DeviceResult
from .client import (
    INFO_GETTERS,
    ClientFamilySpec,
    classify_call_error,
    classify_connect_error,
    default_client_families,
    probe_capabilities,
    safe_disconnect,
    tcp_reachable,
)
from .model import CapabilitySet, DeviceConnection

logger = logging.getLogger(__name__)

ReachabilityProbe = Callable[[str, int, float], bool]


@dataclass
class _Slot:
    connection: DeviceConnection
    client: Any = None
    io_lock: threading.Lock = field(default_factory=threading.Lock)
    reported_missing: set = field(default_factory=set)
    # A timed-out call still running on `client`; no new call is sent until it returns.
    pending: Optional[Future] = None


class ConnectionManager:
    """Registry of device connections keyed by IP.

    At most one live client exists per IP. Every public operation returns a
    DeviceResult; device-side failures are never raised from here.
    """

    def __init__(
        self,
        *,
        families: Sequence[ClientFamilySpec] | None = None,
        reachability_probe: ReachabilityProbe | None = None,
        default_port: int = constants.DEFAULT_DEVICE_PORT,
        password: int = constants.DEFAULT_DEVICE_PASSWORD,
        connect_timeout: float = constants.CONNECT_TIMEOUT_SECONDS,
        secondary_timeout: float = constants.SECONDARY_CONNECT_TIMEOUT_SECONDS,
        fetch_timeout: float = constants.FETCH_TIMEOUT_SECONDS,
        info_timeout: float = constants.INFO_TIMEOUT_SECONDS,
        reachability_timeout: float = constants.REACHABILITY_TIMEOUT_SECONDS,
        idle_minutes: int = constants.IDLE_CONNECTION_MINUTES,
        reaper_interval: float = constants.REAPER_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = now_local,
        io_workers: int = 8,
    ):
        if families is None:
            families = default_client_families(
                connect_timeout=connect_timeout,
                secondary_timeout=secondary_timeout,
                password=password,
            )
        self._families = list(families)
        self._probe_reachable = reachability_probe or tcp_reachable
        self._default_port = int(default_port)
        self._fetch_timeout = float(fetch_timeout)
        self._info_timeout = float(info_timeout)
        self._reachability_timeout = float(reachability_timeout)
        self._idle = timedelta(minutes=int(idle_minutes))
        self._reaper_interval = float(reaper_interval)
        self._clock = clock

        self._slots: dict[str, _Slot] = {}
        self._lock = threading.RLock()
        self._connect_locks: dict[str, threading.Lock] = {}
        self._io = ThreadPoolExecutor(max_workers=int(io_workers), thread_name_prefix="device-io")

        self._stop = threading.Event()
        self._reaper: Optional[threading.Thread] = None

    @property
    def default_port(self) -> int:
        return self._default_port

    @property
    def reachability_timeout(self) -> float:
        return self._reachability_timeout

    def probe_reachable(self, ip: str, port: int) -> bool:
        return bool(self._probe_reachable(ip, int(port), self._reachability_timeout))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def connect(self, ip: str, port: int | None = None, *, company_id: str | None = None) -> DeviceResult[DeviceConnection]:
        ip = require_device_ip(ip)
        port = require_port(port if port is not None else self._default_port)

        with self._connect_lock(ip):
            with self._lock:
                slot = self._slots.get(ip)
                if slot and slot.connection.is_connected and slot.client is not None:
                    if company_id and slot.connection.company_id != company_id:
                        slot.connection = replace(slot.connection, company_id=company_id)
                    self._touch(slot)
                    return DeviceResult.success(slot.connection)
                if slot and slot.client is not None:
                    safe_disconnect(slot.client)
                self._slots[ip] = _Slot(
                    connection=DeviceConnection(
                        ip=ip, port=port, status=ConnectionStatus.CONNECTING, company_id=company_id
                    )
                )

            logger.info("Connecting to device %s:%s", ip, port)
            result = self._open(ip, port, company_id=company_id)
            if result.ok:
                logger.info(
                    "Connected to %s via %s client (capabilities: %s)",
                    ip,
                    result.value.client_family.value,
                    ", ".join(sorted(c.value for c in result.value.capabilities.capabilities)) or "none",
                )
            else:
                logger.warning("Connection to %s failed: %s (%s)", ip, result.error, result.error_code)
            return result

    def _open(self, ip: str, port: int, *, company_id: str | None) -> DeviceResult[DeviceConnection]:
        last_error: DeviceError | None = None
        for index, spec in enumerate(self._families):
            # Fallback tiers only make sense when the previous tier could not reach the device.
            if index > 0 and not isinstance(last_error, NetworkUnreachable):
                break
            client, error = self._connect_family(spec, ip, port)
            if client is None:
                last_error = error
                continue

            capabilities = probe_capabilities(client, reduced=spec.reduced)
            info, capabilities, pending = self._read_info(client, capabilities)
            now = self._clock()
            connection = DeviceConnection(
                ip=ip,
                port=port,
                status=ConnectionStatus.CONNECTED,
                capabilities=capabilities,
                client_family=spec.family,
                connected_at=now,
                last_used_at=now,
                company_id=company_id,
                device_info=info,
            )
            with self._lock:
                self._slots[ip] = _Slot(connection=connection, client=client, pending=pending)
            return DeviceResult.success(connection)

        reachable = self.probe_reachable(ip, port)
        if reachable:
            error: DeviceError = ProtocolRejected(
                f"{ip}:{port} accepts TCP connections but the device protocol handshake failed"
                + (f" ({last_error})" if last_error else "")
            )
        else:
            error = NetworkUnreachable(f"{ip}:{port} is not reachable" + (f" ({last_error})" if last_error else ""))

        now = self._clock()
        with self._lock:
            self._slots[ip] = _Slot(
                connection=DeviceConnection(
                    ip=ip,
                    port=port,
                    status=ConnectionStatus.FAILED,
                    capabilities=CapabilitySet.empty(),
                    client_family=ClientFamily.REACHABILITY if reachable else ClientFamily.NONE,
                    last_error=str(error),
                    last_error_code=error.code,
                    last_used_at=now,
                    company_id=company_id,
                )
            )
        return DeviceResult.failure(error)

    def _connect_family(self, spec: ClientFamilySpec, ip: str, port: int) -> tuple[Any, DeviceError | None]:
        last_error: DeviceError | None = None
        for shape, build in spec.construction_shapes(ip, port):
            try:
                client = build()
            except (TypeError, ValueError) as exc:
                # Constructor signature differs across client releases.
                logger.debug("%s client shape %r not accepted: %s", spec.family.value, shape, exc)
                last_error = ProtocolRejected(f"client construction failed: {exc}")
                continue

            future = self._io.submit(client.connect)
            try:
                handle = future.result(timeout=spec.timeout)
            except Exception as exc:
                last_error = classify_connect_error(exc)
                logger.debug("%s client shape %r failed to connect to %s: %s", spec.family.value, shape, ip, exc)
                if not future.done():
                    # The abandoned attempt owns a socket until the client's own timeout fires.
                    wait([future])
                safe_disconnect(client)
                continue
            return (handle if handle is not None else client), None
        return None, last_error

    def _read_info(
        self, client: Any, capabilities: CapabilitySet
    ) -> tuple[dict, CapabilitySet, Optional[Future]]:
        if not capabilities.supports(Capability.GET_INFO):
            return {}, capabilities, None

        info: dict = {}
        primary = capabilities.method_for(Capability.GET_INFO)
        getters = dict(INFO_GETTERS)
        if primary not in getters.values():
            getters = {"info": primary, **getters}

        for key, name in getters.items():
            fn = getattr(client, name, None)
            if not callable(fn):
                continue
            future = self._io.submit(fn)
            try:
                value = future.result(timeout=self._info_timeout)
            except Exception as exc:
                logger.debug("Info getter %s failed: %s", name, exc)
                pending = None if future.done() else future
                if name == primary:
                    return info, capabilities.without(Capability.GET_INFO), pending
                if pending is not None:
                    return info, capabilities, pending
                continue
            if value is not None:
                info[key] = value if isinstance(value, (int, float, bool, dict)) else str(value)
        return info, capabilities, None

    def disconnect(self, ip: str) -> bool:
        with self._lock:
            slot = self._slots.pop(ip, None)
        if slot is None:
            return False
        if slot.client is not None:
            safe_disconnect(slot.client)
        logger.info("Disconnected device %s", ip)
        return True

    def status(self, ip: str) -> Optional[DeviceConnection]:
        with self._lock:
            slot = self._slots.get(ip)
            return slot.connection if slot else None

    def list_connections(self) -> list[DeviceConnection]:
        with self._lock:
            return [slot.connection for slot in self._slots.values()]

    # ------------------------------------------------------------------
    # Data operations
    # ------------------------------------------------------------------
    def fetch_attendance(self, ip: str) -> DeviceResult[list]:
        return self._data_call(ip, Capability.GET_ATTENDANCE, bracket=True)

    def fetch_users(self, ip: str) -> DeviceResult[list]:
        return self._data_call(ip, Capability.GET_USERS, bracket=True)

    def device_info(self, ip: str) -> DeviceResult[dict]:
        with self._lock:
            slot = self._slots.get(ip)
        if slot is None or not slot.connection.is_connected:
            return DeviceResult.failure(NetworkUnreachable(f"{ip} is not connected"))
        if not slot.connection.capabilities.supports(Capability.GET_INFO):
            return DeviceResult.failure(self._capability_missing(slot, Capability.GET_INFO))
        self._touch(slot)
        return DeviceResult.success(dict(slot.connection.device_info))

    def _data_call(self, ip: str, capability: Capability, *, bracket: bool) -> DeviceResult[list]:
        with self._lock:
            slot = self._slots.get(ip)
        if slot is None or not slot.connection.is_connected or slot.client is None:
            return DeviceResult.failure(NetworkUnreachable(f"{ip} is not connected"))

        method = slot.connection.capabilities.method_for(capability)
        if method is None:
            return DeviceResult.failure(self._capability_missing(slot, capability))

        client = slot.client

        def _call():
            disabled = False
            if bracket and callable(getattr(client, "disable_device", None)):
                client.disable_device()
                disabled = True
            try:
                return getattr(client, method)()
            finally:
                if disabled:
                    try:
                        client.enable_device()
                    except Exception as exc:
                        logger.warning("Could not re-enable device %s: %s", ip, exc)

        with slot.io_lock:
            if slot.pending is not None and not slot.pending.done():
                error = ProtocolTimeout(f"{ip} has not answered a previous request yet")
                logger.warning("%s (%s)", error, error.code)
                self._record_error(ip, error)
                return DeviceResult.failure(error)
            slot.pending = None

            self._touch(slot)
            future = self._io.submit(_call)
            try:
                value = future.result(timeout=self._fetch_timeout)
            except Exception as exc:
                error = classify_call_error(exc, f"{capability.value} on {ip}")
                if not future.done():
                    slot.pending = future
                logger.warning("%s (%s)", error, error.code)
                if isinstance(error, NetworkUnreachable):
                    self._mark_failed(ip, error)
                else:
                    self._record_error(ip, error)
                return DeviceResult.failure(error)

        # Some firmware answers "no records" with None instead of an empty list.
        return DeviceResult.success(list(value or []))

    def _capability_missing(self, slot: _Slot, capability: Capability) -> CapabilityMissing:
        error = CapabilityMissing(f"{capability.value} is not supported on {slot.connection.ip}")
        with self._lock:
            first = capability not in slot.reported_missing
            slot.reported_missing.add(capability)
        if first:
            logger.warning("%s (client family: %s)", error, slot.connection.client_family.value)
        return error

    # ------------------------------------------------------------------
    # Idle reaping
    # ------------------------------------------------------------------
    def reap_idle(self, now: datetime | None = None) -> list[str]:
        now = now or self._clock()
        with self._lock:
            stale = [
                ip
                for ip, slot in self._slots.items()
                if slot.connection.status != ConnectionStatus.CONNECTING
                and slot.connection.last_used_at is not None
                and now - slot.connection.last_used_at >= self._idle
            ]
        for ip in stale:
            logger.info("Evicting idle connection %s", ip)
            self.disconnect(ip)
        return stale

    def start(self) -> None:
        if self._reaper is not None and self._reaper.is_alive():
            return
        self._stop.clear()
        self._reaper = threading.Thread(target=self._reap_loop, name="device-reaper", daemon=True)
        self._reaper.start()

    def _reap_loop(self) -> None:
        while not self._stop.wait(self._reaper_interval):
            try:
                self.reap_idle()
            except Exception:
                logger.exception("Idle connection reaper failed")

    def shutdown(self) -> None:
        self._stop.set()
        if self._reaper is not None:
            self._reaper.join(timeout=5)
            self._reaper = None
        with self._lock:
            ips = list(self._slots)
        for ip in ips:
            self.disconnect(ip)
        self._io.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _connect_lock(self, ip: str) -> threading.Lock:
        with self._lock:
            lock = self._connect_locks.get(ip)
            if lock is None:
                lock = threading.Lock()
                self._connect_locks[ip] = lock
            return lock

    def _touch(self, slot: _Slot) -> None:
        with self._lock:
            slot.connection = replace(slot.connection, last_used_at=self._clock())

    def _record_error(self, ip: str, error: DeviceError) -> None:
        with self._lock:
            slot = self._slots.get(ip)
            if slot:
                slot.connection = replace(slot.connection, last_error=str(error), last_error_code=error.code)

    def _mark_failed(self, ip: str, error: DeviceError) -> None:
        with self._lock:
            slot = self._slots.get(ip)
            if slot is None:
                return
            client, slot.client = slot.client, None
            slot.connection = replace(
                slot.connection,
                status=ConnectionStatus.FAILED,
                last_error=str(error),
                last_error_code=error.code,
            )
        if client is not None:
            safe_disconnect(client)

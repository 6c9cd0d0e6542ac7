"""Adapters around the pyzk device client.

The concrete client is treated as unreliable: argument shapes that work differ
between pyzk releases, methods come and go with firmware, and any call may hang.
Everything here converts that behaviour into plain values or DeviceError types.
"""

from __future__ import annotations

import logging
import socket
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from zk import ZK
from zk.exception import ZKErrorConnection, ZKErrorResponse, ZKNetworkError

from ..core.enums import Capability, ClientFamily
from ..core.exceptions import DeviceError, NetworkUnreachable, ProtocolRejected, ProtocolTimeout
from .model import CapabilitySet

logger = logging.getLogger(__name__)

# First callable name wins.
CAPABILITY_METHODS: Mapping[Capability, tuple[str, ...]] = {
    Capability.GET_INFO: ("get_firmware_version", "get_info", "getInfo"),
    Capability.GET_USERS: ("get_users", "get_user", "getUsers", "getUser"),
    Capability.GET_ATTENDANCE: ("get_attendance", "getAttendance"),
}

DATA_CAPABILITIES = frozenset({Capability.GET_USERS, Capability.GET_ATTENDANCE})

INFO_GETTERS: Mapping[str, str] = {
    "firmware_version": "get_firmware_version",
    "serial_number": "get_serialnumber",
    "device_name": "get_device_name",
    "platform": "get_platform",
}

NETWORK_ERRORS = (ZKNetworkError, ConnectionError, OSError)
PROTOCOL_ERRORS = (ZKErrorConnection, ZKErrorResponse)


@dataclass(frozen=True)
class ClientFamilySpec:
    """One tier of the connect fallback chain.

    `transport` is passed to every construction shape (e.g. force_udp),
    `options` only to the option-style shapes.
    """

    family: ClientFamily
    factory: Callable[..., Any]
    timeout: float
    transport: Mapping[str, Any] = field(default_factory=dict)
    options: Mapping[str, Any] = field(default_factory=dict)
    reduced: bool = False

    def construction_shapes(self, ip: str, port: int) -> list[tuple[str, Callable[[], Any]]]:
        transport = dict(self.transport)
        options = dict(self.options)
        return [
            ("bare", lambda: self.factory(ip, port, **transport)),
            ("options", lambda: self.factory(ip, port=port, **transport, **options)),
            (
                "options+timeout",
                lambda: self.factory(ip, port=port, timeout=int(self.timeout), **transport, **options),
            ),
        ]


def default_client_families(
    *,
    connect_timeout: float,
    secondary_timeout: float,
    password: int = 0,
) -> list[ClientFamilySpec]:
    options = {"password": int(password), "ommit_ping": True, "verbose": False}
    return [
        ClientFamilySpec(
            family=ClientFamily.PRIMARY,
            factory=ZK,
            timeout=connect_timeout,
            options=options,
        ),
        # UDP transport breaks on large payloads (user/attendance dumps), so it is
        # only ever used for presence and info.
        ClientFamilySpec(
            family=ClientFamily.SECONDARY,
            factory=ZK,
            timeout=secondary_timeout,
            transport={"force_udp": True},
            options=options,
            reduced=True,
        ),
    ]


def is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, (FutureTimeout, socket.timeout, TimeoutError)):
        return True
    # pyzk wraps socket timeouts raised while sending a command.
    return isinstance(exc, ZKNetworkError) and "timed out" in str(exc).lower()


def classify_connect_error(exc: BaseException) -> DeviceError:
    """During connect, a hang is indistinguishable from an offline device."""
    if is_timeout(exc) or isinstance(exc, NETWORK_ERRORS):
        return NetworkUnreachable(str(exc) or type(exc).__name__)
    return ProtocolRejected(str(exc) or type(exc).__name__)


def classify_call_error(exc: BaseException, operation: str) -> DeviceError:
    if is_timeout(exc):
        return ProtocolTimeout(f"{operation} timed out")
    if isinstance(exc, NETWORK_ERRORS):
        return NetworkUnreachable(f"{operation} failed: {exc}")
    if isinstance(exc, PROTOCOL_ERRORS):
        return ProtocolRejected(f"{operation} rejected: {exc}")
    return ProtocolRejected(f"{operation} failed: {type(exc).__name__}: {exc}")


def probe_capabilities(client: Any, *, reduced: bool) -> CapabilitySet:
    methods: list[tuple[Capability, str]] = []
    for capability, names in CAPABILITY_METHODS.items():
        if reduced and capability in DATA_CAPABILITIES:
            continue
        for name in names:
            try:
                attr = getattr(client, name, None)
            except Exception as exc:
                logger.debug("Probing %s raised %s; treating as unsupported", name, exc)
                attr = None
            if callable(attr):
                methods.append((capability, name))
                break
    return CapabilitySet(methods=tuple(methods), reduced=reduced)


def tcp_reachable(ip: str, port: int, timeout: float) -> bool:
    """Bare TCP connect, no protocol. Only used to tell offline from rejected."""
    try:
        with socket.create_connection((ip, int(port)), timeout=timeout):
            return True
    except OSError:
        return False


def safe_disconnect(client: Any) -> None:
    disconnect = getattr(client, "disconnect", None)
    if not callable(disconnect):
        return
    try:
        disconnect()
    except Exception as exc:
        logger.debug("Ignoring disconnect error: %s", exc)

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from ..core.enums import Capability, ClientFamily, ConnectionStatus


@dataclass(frozen=True)
class CapabilitySet:
    """Operations confirmed callable on one connection, probed once at connect time.

    `methods` maps each supported capability to the client method name that
    implements it on this particular client instance.
    """

    methods: tuple[tuple[Capability, str], ...] = ()
    reduced: bool = False

    @classmethod
    def empty(cls) -> "CapabilitySet":
        return cls()

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset(cap for cap, _ in self.methods)

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def method_for(self, capability: Capability) -> Optional[str]:
        for cap, name in self.methods:
            if cap == capability:
                return name
        return None

    def without(self, capability: Capability) -> "CapabilitySet":
        return CapabilitySet(
            methods=tuple((c, n) for c, n in self.methods if c != capability),
            reduced=self.reduced,
        )


@dataclass(frozen=True)
class DeviceConnection:
    """Snapshot of one device IP in the connection registry."""

    ip: str
    port: int
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    capabilities: CapabilitySet = field(default_factory=CapabilitySet.empty)
    client_family: ClientFamily = ClientFamily.NONE
    last_error: Optional[str] = None
    last_error_code: Optional[str] = None
    connected_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    company_id: Optional[str] = None
    device_info: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    def to_dict(self) -> dict:
        return {
            "ip": self.ip,
            "port": self.port,
            "status": self.status.value,
            "capabilities": sorted(c.value for c in self.capabilities.capabilities),
            "reduced_capability": self.capabilities.reduced,
            "client_family": self.client_family.value,
            "last_error": self.last_error,
            "last_error_code": self.last_error_code,
            "connected_at": self.connected_at.isoformat() if self.connected_at else None,
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
            "company_id": self.company_id,
            "device_info": dict(self.device_info),
        }


@dataclass(frozen=True)
class DiagnosisReport:
    ip: str
    port: int
    network_reachable: bool
    private_address: bool
    connection_status: Optional[ConnectionStatus]
    issues: tuple[str, ...]
    recommended_action: str

    def to_dict(self) -> dict:
        return {
            "ip": self.ip,
            "port": self.port,
            "network_reachable": self.network_reachable,
            "private_address": self.private_address,
            "connection_status": self.connection_status.value if self.connection_status else None,
            "issues": list(self.issues),
            "recommended_action": self.recommended_action,
        }

from __future__ import annotations

import ipaddress
import logging

from ..common.validators import require_device_ip, require_port
from ..core.enums import ConnectionStatus
from .connection_manager import ConnectionManager
from .model import DiagnosisReport

logger = logging.getLogger(__name__)


class DeviceDiagnostics:
    """Explains why a device cannot be synced, without opening a protocol session."""

    def __init__(self, connections: ConnectionManager):
        self._connections = connections

    def diagnose(self, ip: str, port: int | None = None) -> DiagnosisReport:
        ip = require_device_ip(ip)
        port = require_port(port if port is not None else self._connections.default_port)

        issues: list[str] = []
        private = ipaddress.ip_address(ip).is_private
        if not private:
            issues.append("IP address is outside the private ranges; check the device network settings")

        reachable = self._connections.probe_reachable(ip, port)
        if not reachable:
            issues.append(f"Port {port} is not accessible")

        current = self._connections.status(ip)
        status = current.status if current else None
        if current and current.last_error:
            issues.append(f"Last connection error: {current.last_error}")

        if reachable and status == ConnectionStatus.CONNECTED:
            action = "Device is connected and reachable"
        elif reachable:
            action = "Device is reachable; check the communication password and protocol settings on the terminal"
        elif private:
            action = "Device not reachable on network; check power, cabling and that it is on the same subnet"
        else:
            action = "Device not reachable; verify the configured IP address"

        logger.info("Diagnosed %s:%s reachable=%s issues=%d", ip, port, reachable, len(issues))
        return DiagnosisReport(
            ip=ip,
            port=port,
            network_reachable=reachable,
            private_address=private,
            connection_status=status,
            issues=tuple(issues),
            recommended_action=action,
        )

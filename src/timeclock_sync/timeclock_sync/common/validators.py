from __future__ import annotations

import ipaddress
from datetime import date

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_device_ip(value: str) -> str:
    value = require_non_empty(value, "device_ip")
    try:
        ipaddress.ip_address(value)
    except ValueError:
        raise ValidationError(f"Invalid device IP {value!r}") from None
    return value


def require_port(value) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid port {value!r}") from None
    if not 0 < port < 65536:
        raise ValidationError(f"Invalid port {value!r}")
    return port


def require_date_range(start: date, end: date) -> tuple[date, date]:
    if start > end:
        raise ValidationError("start date must not be after end date")
    return start, end


def require_positive_days(value) -> int:
    try:
        days = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid number of days {value!r}") from None
    if days <= 0:
        raise ValidationError("days must be positive")
    return days

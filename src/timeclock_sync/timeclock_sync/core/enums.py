from __future__ import annotations

from enum import Enum


class StateCode(str, Enum):
    """Normalized punch state stored on every attendance event."""

    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"
    BREAK_OUT = "break-out"
    BREAK_IN = "break-in"
    OT_IN = "ot-in"
    OT_OUT = "ot-out"
    UNKNOWN = "unknown"


class ConnectionStatus(str, Enum):
    UNKNOWN = "unknown"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class ClientFamily(str, Enum):
    """Which fallback tier produced a connection."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    REACHABILITY = "reachability"
    NONE = "none"


class Capability(str, Enum):
    GET_INFO = "get_info"
    GET_USERS = "get_users"
    GET_ATTENDANCE = "get_attendance"


class SyncModeKind(str, Enum):
    INCREMENTAL = "incremental"
    FORCED_DAYS = "forced_days"
    FORCED_RANGE = "forced_range"


class WindowStatus(str, Enum):
    SYNCED = "synced"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    SKIPPED = "skipped"


class CutoffSource(str, Enum):
    CUSTOM = "custom"
    DEVICE_REPORTED = "device-reported"
    DEFAULT = "default"

class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "DomainError"


class ValidationError(DomainError):
    """Raised when input data is invalid (bad IP, bad date range, bad HH:MM)."""

    code = "ValidationError"


class DeviceError(DomainError):
    """Base for failures talking to a time-clock terminal.

    Device errors are carried inside a DeviceResult at the ConnectionManager
    boundary; they are only raised by DeviceResult.unwrap().
    """

    code = "DeviceError"
    retryable = False


class NetworkUnreachable(DeviceError):
    """Device offline or not routable. Retry by reconnecting."""

    code = "NetworkUnreachable"
    retryable = True


class ProtocolRejected(DeviceError):
    """Device answers on the network but the client protocol handshake failed."""

    code = "ProtocolRejected"


class ProtocolTimeout(DeviceError):
    """Device reachable but did not answer in time."""

    code = "ProtocolTimeout"
    retryable = True


class CapabilityMissing(DeviceError):
    """Operation permanently unsupported on this connection."""

    code = "CapabilityMissing"


class MalformedEvent(DomainError):
    """A raw punch record that cannot be normalized."""

    code = "MalformedEvent"


class SyncAlreadyRunning(DomainError):
    """A sync for this device is already in progress."""

    code = "SyncAlreadyRunning"

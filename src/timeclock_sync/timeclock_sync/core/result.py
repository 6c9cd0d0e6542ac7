from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .exceptions import DeviceError

T = TypeVar("T")


@dataclass(frozen=True)
class DeviceResult(Generic[T]):
    """Uniform `value | typed error` returned from every device operation."""

    value: Optional[T] = None
    error: Optional[DeviceError] = None

    @classmethod
    def success(cls, value: T) -> "DeviceResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DeviceError) -> "DeviceResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value

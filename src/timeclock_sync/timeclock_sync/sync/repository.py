from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Protocol


class WatermarkRepository(Protocol):
    def get(self, device_ip: str) -> Optional[datetime]:
        raise NotImplementedError

    def advance(self, device_ip: str, synced_to: datetime) -> datetime:
        """Move the watermark forward; never backward. Returns the stored value."""

        raise NotImplementedError

    def all(self) -> Mapping[str, datetime]:
        raise NotImplementedError

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceEvent, EventFilter, SyncStats


class AttendanceRepository(Protocol):
    """Append-only event store: no update or delete operations."""

    def existing_keys(self, keys: Sequence[str]) -> set[str]:
        raise NotImplementedError

    def insert_batch(self, events: Sequence[AttendanceEvent]) -> tuple[int, int]:
        """Insert events, returning (inserted, duplicates rejected by the unique index)."""

        raise NotImplementedError

    def get_events(self, flt: EventFilter) -> Sequence[AttendanceEvent]:
        raise NotImplementedError

    def get_sync_stats(self, *, company_id: str, device_ip: Optional[str] = None) -> SyncStats:
        raise NotImplementedError

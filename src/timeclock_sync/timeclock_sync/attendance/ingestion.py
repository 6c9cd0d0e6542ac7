from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Sequence

from ..common.datetime_utils import now_local
from ..core import constants
from ..core.exceptions import MalformedEvent
from ..core.result import DeviceResult
from ..devices.connection_manager import ConnectionManager
from .model import AttendanceEvent, IngestResult
from .normalizer import normalize_record, record_timestamp
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Fetch, filter, normalize, dedupe and persist punches in bounded batches."""

    def __init__(
        self,
        store: AttendanceRepository,
        connections: ConnectionManager | None = None,
        *,
        batch_size: int = constants.INGEST_BATCH_SIZE,
        clock: Callable[[], datetime] = now_local,
    ):
        self._store = store
        self._connections = connections
        self._batch_size = max(int(batch_size), 1)
        self._clock = clock

    def fetch(self, device_ip: str) -> DeviceResult[list]:
        """One bulk pull of every record the device holds."""
        if self._connections is None:
            raise RuntimeError("IngestionPipeline was built without a ConnectionManager")
        return self._connections.fetch_attendance(device_ip)

    @staticmethod
    def filter_window(
        records: Iterable[Any],
        start: datetime,
        end: datetime,
        *,
        include_undated: bool = True,
    ) -> list[Any]:
        """Keep records with start <= timestamp < end.

        Records without a usable timestamp are kept when `include_undated` is set
        so normalization can count them as errors.
        """
        kept = []
        for raw in records:
            ts = record_timestamp(raw)
            if ts is None:
                if include_undated:
                    kept.append(raw)
                continue
            if start <= ts < end:
                kept.append(raw)
        return kept

    def sync_window(
        self,
        *,
        device_ip: str,
        company_id: str,
        start: datetime,
        end: datetime,
        records: Sequence[Any],
        include_undated: bool = True,
    ) -> IngestResult:
        in_window = self.filter_window(records, start, end, include_undated=include_undated)
        logger.info(
            "Window %s -> %s on %s: %d of %d device records in range",
            start.isoformat(),
            end.isoformat(),
            device_ip,
            len(in_window),
            len(records),
        )
        return self.ingest(in_window, device_ip=device_ip, company_id=company_id)

    def ingest(self, events: Iterable[Any], *, device_ip: str, company_id: str) -> IngestResult:
        items = list(events or [])
        total = IngestResult()
        for offset in range(0, len(items), self._batch_size):
            total = total.merge(self._ingest_batch(items[offset : offset + self._batch_size], device_ip, company_id))

        if items:
            logger.info(
                "Ingested %d records from %s: stored=%d duplicates=%d errors=%d",
                len(items),
                device_ip,
                total.stored_count,
                total.duplicate_count,
                total.error_count,
            )
        return total

    def _ingest_batch(self, batch: Sequence[Any], device_ip: str, company_id: str) -> IngestResult:
        synced_at = self._clock()
        errors = 0
        duplicates = 0
        seen: set[str] = set()
        normalized: list[AttendanceEvent] = []

        for raw in batch:
            try:
                event = normalize_record(raw, device_ip=device_ip, company_id=company_id, synced_at=synced_at)
            except MalformedEvent as exc:
                errors += 1
                logger.debug("Skipping malformed record from %s: %s", device_ip, exc)
                continue
            if event.unique_key in seen:
                duplicates += 1
                continue
            seen.add(event.unique_key)
            normalized.append(event)

        if not normalized:
            return IngestResult(duplicate_count=duplicates, error_count=errors)

        try:
            existing = self._store.existing_keys([e.unique_key for e in normalized])
            fresh = [e for e in normalized if e.unique_key not in existing]
            inserted, raced = self._store.insert_batch(fresh) if fresh else (0, 0)
        except Exception:
            logger.exception("Storing %d events from %s failed", len(normalized), device_ip)
            return IngestResult(
                duplicate_count=duplicates,
                error_count=errors + len(normalized),
                storage_failures=len(normalized),
            )

        return IngestResult(
            stored_count=inserted,
            duplicate_count=duplicates + (len(normalized) - len(fresh)) + raced,
            error_count=errors,
        )

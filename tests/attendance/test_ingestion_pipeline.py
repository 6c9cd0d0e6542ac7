from datetime import datetime, timedelta

from src.timeclock_sync.timeclock_sync.attendance.ingestion import IngestionPipeline
from helpers import DEVICE_IP, event, punch

T0 = datetime(2024, 3, 11, 8, 0)


def _punches(n: int, *, start: datetime = T0):
    return [punch(str(i % 3 + 1), start + timedelta(minutes=i)) for i in range(n)]


def test_ingest_stores_new_events(store):
    pipeline = IngestionPipeline(store)

    result = pipeline.ingest(_punches(5), device_ip=DEVICE_IP, company_id="acme")

    assert (result.stored_count, result.duplicate_count, result.error_count) == (5, 0, 0)
    assert len(store.events) == 5


def test_ingest_counts_already_stored_keys_as_duplicates(store):
    records = _punches(5)
    for r in records[:2]:
        e = event(r.user_id, r.timestamp)
        store.events[e.unique_key] = e
    pipeline = IngestionPipeline(store)

    result = pipeline.ingest(records, device_ip=DEVICE_IP, company_id="acme")

    assert (result.stored_count, result.duplicate_count, result.error_count) == (3, 2, 0)


def test_ingesting_same_batch_twice_is_idempotent(store):
    pipeline = IngestionPipeline(store)
    records = _punches(10)

    first = pipeline.ingest(records, device_ip=DEVICE_IP, company_id="acme")
    second = pipeline.ingest(records, device_ip=DEVICE_IP, company_id="acme")

    assert first.stored_count == 10
    assert second.stored_count == 0
    assert second.duplicate_count == 10
    assert len(store.events) == 10


def test_malformed_records_are_counted_and_skipped(store):
    pipeline = IngestionPipeline(store)
    records = _punches(3) + [{"timestamp": "2024-03-11T09:00:00"}, {"user_id": "1", "timestamp": "garbage"}]

    result = pipeline.ingest(records, device_ip=DEVICE_IP, company_id="acme")

    assert (result.stored_count, result.duplicate_count, result.error_count) == (3, 0, 2)


def test_duplicates_within_one_batch_are_stored_once(store):
    pipeline = IngestionPipeline(store)
    r = punch("1", T0)

    result = pipeline.ingest([r, r, r], device_ip=DEVICE_IP, company_id="acme")

    assert result.stored_count == 1
    assert result.duplicate_count == 2


def test_ingest_writes_in_batches_of_one_hundred(store):
    pipeline = IngestionPipeline(store)

    result = pipeline.ingest(_punches(250), device_ip=DEVICE_IP, company_id="acme")

    assert result.stored_count == 250
    assert store.insert_calls == 3


def test_storage_failure_is_counted_not_raised(store):
    store.fail_inserts = True
    pipeline = IngestionPipeline(store)

    result = pipeline.ingest(_punches(4), device_ip=DEVICE_IP, company_id="acme")

    assert result.stored_count == 0
    assert result.storage_failures == 4
    assert result.error_count == 4


def test_filter_window_is_half_open():
    start = datetime(2024, 3, 11)
    end = datetime(2024, 3, 12)
    records = [
        punch("1", start - timedelta(seconds=1)),
        punch("1", start),
        punch("1", end - timedelta(seconds=1)),
        punch("1", end),
        {"user_id": "1", "timestamp": "not a time"},
    ]

    kept = IngestionPipeline.filter_window(records, start, end)
    dated_only = IngestionPipeline.filter_window(records, start, end, include_undated=False)

    assert [getattr(r, "timestamp", None) for r in kept] == [start, end - timedelta(seconds=1), None]
    assert len(dated_only) == 2


def test_sync_window_ingests_only_records_in_range(store):
    pipeline = IngestionPipeline(store)
    records = _punches(3, start=datetime(2024, 3, 10, 8, 0)) + _punches(2, start=datetime(2024, 3, 12, 8, 0))

    result = pipeline.sync_window(
        device_ip=DEVICE_IP,
        company_id="acme",
        start=datetime(2024, 3, 12),
        end=datetime(2024, 3, 13),
        records=records,
    )

    assert result.stored_count == 2
    assert {e.date.day for e in store.events.values()} == {12}

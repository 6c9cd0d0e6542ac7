import threading
from datetime import date, datetime, timedelta

import pytest
from zk.exception import ZKNetworkError

from src.timeclock_sync.timeclock_sync.attendance.ingestion import IngestionPipeline
from src.timeclock_sync.timeclock_sync.core.enums import WindowStatus
from src.timeclock_sync.timeclock_sync.core.exceptions import SyncAlreadyRunning, ValidationError
from src.timeclock_sync.timeclock_sync.sync.model import SyncMode
from src.timeclock_sync.timeclock_sync.sync.service import SyncCoordinator
from helpers import DEVICE_IP, punch


@pytest.fixture
def recent_punches(device, fixed_now):
    device.records = [punch(str(i + 1), fixed_now - timedelta(hours=i + 1)) for i in range(3)]
    return device.records


def _coordinator(manager, store, watermarks, clock, **kwargs):
    kwargs.setdefault("default_company_id", "acme")
    return SyncCoordinator(manager, IngestionPipeline(store, manager, clock=clock), watermarks, clock=clock, **kwargs)


def test_incremental_sync_stores_events_and_advances_watermark(coordinator, store, watermarks, recent_punches, fixed_now):
    result = coordinator.trigger_sync(DEVICE_IP)

    assert result.success
    assert result.synced == 3
    assert result.duplicates == 0
    assert not result.partial
    assert [w.status for w in result.windows] == [WindowStatus.SYNCED]
    assert watermarks.values[DEVICE_IP] == fixed_now
    assert {e.company_id for e in store.events.values()} == {"acme"}


def test_second_run_reports_duplicates_only(coordinator, store, recent_punches):
    first = coordinator.trigger_sync(DEVICE_IP)
    second = coordinator.trigger_sync(DEVICE_IP)

    assert first.synced == 3
    assert second.success
    assert second.synced == 0
    assert second.duplicates == 3
    assert len(store.events) == 3


def test_company_comes_from_connection_when_not_given(coordinator, manager, store, recent_punches):
    manager.connect(DEVICE_IP, company_id="beta")

    coordinator.trigger_sync(DEVICE_IP)

    assert {e.company_id for e in store.events.values()} == {"beta"}


def test_missing_company_is_rejected(manager, store, watermarks, clock):
    coordinator = _coordinator(manager, store, watermarks, clock, default_company_id=None)
    try:
        with pytest.raises(ValidationError):
            coordinator.trigger_sync(DEVICE_IP)
    finally:
        coordinator.shutdown()


def test_invalid_ip_is_rejected(coordinator):
    with pytest.raises(ValidationError):
        coordinator.trigger_sync("999.1.1.1")


def test_timeout_is_a_partial_success_without_watermark_move(make_manager, device, store, watermarks, clock, recent_punches):
    manager = make_manager(fetch_timeout=0.05)
    device.fetch_delay = 0.3
    coordinator = _coordinator(manager, store, watermarks, clock)
    try:
        result = coordinator.trigger_sync(DEVICE_IP)
    finally:
        coordinator.shutdown()

    assert result.success
    assert result.partial
    assert result.synced == 0
    assert result.error_code == "ProtocolTimeout"
    assert result.windows[0].status == WindowStatus.TIMED_OUT
    assert DEVICE_IP not in watermarks.values


def test_back_to_back_syncs_never_overlap_device_calls(make_manager, device, store, watermarks, clock, recent_punches):
    manager = make_manager(fetch_timeout=0.05)
    device.fetch_delay = 0.3
    coordinator = _coordinator(manager, store, watermarks, clock)
    try:
        first = coordinator.trigger_sync(DEVICE_IP)
        second = coordinator.trigger_sync(DEVICE_IP)
    finally:
        coordinator.shutdown()

    assert first.error_code == "ProtocolTimeout"
    assert second.error_code == "ProtocolTimeout"
    assert device.fetch_calls == 1
    assert device.max_active_fetches == 1


def test_watermark_never_moves_backwards(coordinator, watermarks, recent_punches, fixed_now):
    coordinator.trigger_sync(DEVICE_IP)

    result = coordinator.trigger_sync(DEVICE_IP, SyncMode.forced_range(date(2024, 1, 1), date(2024, 1, 10)))

    assert result.success
    assert watermarks.values[DEVICE_IP] == fixed_now
    assert result.watermark == fixed_now


def test_forced_run_leaving_a_gap_keeps_watermark(coordinator, device, watermarks, store, fixed_now):
    watermarks.values[DEVICE_IP] = fixed_now - timedelta(days=10)
    device.records = [punch("1", fixed_now - timedelta(days=5))]

    forced = coordinator.trigger_sync(DEVICE_IP, SyncMode.forced_days(1))

    assert forced.success
    assert watermarks.values[DEVICE_IP] == fixed_now - timedelta(days=10)

    coordinator.trigger_sync(DEVICE_IP)

    assert len(store.events) == 1
    assert watermarks.values[DEVICE_IP] == fixed_now


def test_forced_run_without_watermark_does_not_set_one(coordinator, watermarks, recent_punches):
    result = coordinator.trigger_sync(DEVICE_IP, SyncMode.forced_days(1))

    assert result.synced == 3
    assert watermarks.values == {}


def test_concurrent_sync_for_same_device_is_rejected(coordinator, device, recent_punches):
    device.fetch_gate = threading.Event()
    future = coordinator.submit_sync(DEVICE_IP)
    try:
        assert device.fetch_started.wait(2)
        assert coordinator.is_running(DEVICE_IP)
        with pytest.raises(SyncAlreadyRunning):
            coordinator.trigger_sync(DEVICE_IP)
    finally:
        device.fetch_gate.set()

    assert future.result(timeout=5).success
    assert not coordinator.is_running(DEVICE_IP)


def test_cancel_stops_remaining_windows(coordinator, device, watermarks):
    watermarks.values[DEVICE_IP] = datetime(2024, 1, 1)
    device.records = [punch("1", datetime(2024, 1, 2, 8, 0)), punch("1", datetime(2024, 3, 1, 8, 0))]
    device.fetch_gate = threading.Event()
    mode = SyncMode.forced_range(date(2024, 1, 1), date(2024, 3, 14))

    future = coordinator.submit_sync(DEVICE_IP, mode)
    assert device.fetch_started.wait(2)
    assert coordinator.cancel_sync(DEVICE_IP)
    device.fetch_gate.set()
    result = future.result(timeout=5)

    assert result.success
    assert result.cancelled
    assert result.partial
    assert len(result.windows) == 11
    assert result.windows[0].status == WindowStatus.SYNCED
    assert {w.status for w in result.windows[1:]} == {WindowStatus.SKIPPED}
    assert result.synced == 1
    assert watermarks.values[DEVICE_IP] == datetime(2024, 1, 8)


def test_cancel_without_running_sync_returns_false(coordinator):
    assert coordinator.cancel_sync(DEVICE_IP) is False


def test_unreachable_device_fails_the_sync(coordinator, device, watermarks):
    device.connect_error = ZKNetworkError("can't reach device")
    device.udp_connect_error = ZKNetworkError("can't reach device")

    result = coordinator.trigger_sync(DEVICE_IP)

    assert not result.success
    assert result.error_code == "NetworkUnreachable"
    assert result.windows == ()
    assert watermarks.values == {}


def test_storage_failure_keeps_watermark(coordinator, store, watermarks, recent_punches):
    store.fail_inserts = True

    result = coordinator.trigger_sync(DEVICE_IP)

    assert not result.success
    assert result.error_code == "StorageFailure"
    assert result.errors == 3
    assert watermarks.values == {}


def test_sync_connected_devices_queues_each_connected_device(coordinator, manager, recent_punches):
    manager.connect(DEVICE_IP, company_id="acme")

    futures = coordinator.sync_connected_devices()

    assert len(futures) == 1
    assert futures[0].result(timeout=5).synced == 3


def test_sync_status_reports_watermarks_and_next_run(coordinator, recent_punches, fixed_now):
    class _Scheduler:
        def next_run_time(self):
            return datetime(2024, 3, 15, 18, 0)

    coordinator.bind_scheduler(_Scheduler())
    coordinator.trigger_sync(DEVICE_IP)

    status = coordinator.get_sync_status().to_dict()

    assert status == {
        "per_device_watermark": {DEVICE_IP: fixed_now.isoformat()},
        "running": [],
        "next_scheduled": "2024-03-15T18:00:00",
    }


def test_scheduled_round_skips_reduced_capability_connections(coordinator, manager, device):
    device.connect_error = ZKNetworkError("can't reach device")
    manager.connect(DEVICE_IP, company_id="acme")

    assert manager.status(DEVICE_IP).capabilities.reduced
    assert coordinator.sync_connected_devices() == []
    assert device.fetch_calls == 0

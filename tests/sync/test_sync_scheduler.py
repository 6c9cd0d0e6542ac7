from datetime import timedelta

from src.timeclock_sync.timeclock_sync.sync.scheduler import JOB_ID, SyncScheduler
from helpers import DEVICE_IP, punch


def test_scheduler_registers_interval_job(coordinator):
    scheduler = SyncScheduler(coordinator, interval_hours=6)

    job = scheduler._scheduler.get_job(JOB_ID)

    assert job is not None
    assert job.trigger.interval == timedelta(hours=6)
    assert not scheduler.running


def test_run_once_syncs_connected_devices(coordinator, manager, device, fixed_now):
    device.records = [punch("1", fixed_now - timedelta(hours=2))]
    manager.connect(DEVICE_IP, company_id="acme")
    scheduler = SyncScheduler(coordinator)

    assert scheduler.run_once() == 1


def test_run_once_without_connected_devices_queues_nothing(coordinator):
    assert SyncScheduler(coordinator).run_once() == 0


def test_scheduler_start_and_shutdown(coordinator):
    scheduler = SyncScheduler(coordinator, interval_hours=6)

    scheduler.start()
    try:
        assert scheduler.running
        assert scheduler.next_run_time() is not None
        assert coordinator.get_sync_status().next_scheduled == scheduler.next_run_time()
    finally:
        scheduler.shutdown()

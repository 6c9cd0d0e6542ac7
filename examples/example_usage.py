"""Example: using the service layer directly (no Flask).

Controllers are a thin layer; the sync and metrics logic lives in services.
"""

import importlib
from datetime import date, timedelta

from config import get_settings_module

from src.timeclock_sync.timeclock_sync.container import build_container
from src.timeclock_sync.timeclock_sync.sync.model import SyncMode


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, device_config=settings.DEVICE_CONFIG)
    try:
        result = container.sync_coordinator.trigger_sync("192.168.1.201", SyncMode.forced_days(7), company_id="acme")
        print(result.to_dict())

        end = date.today()
        start = end - timedelta(days=30)
        for row in container.metrics_engine.company_summary(company_id="acme", start_date=start, end_date=end):
            print(row.employee_id, row.attendance_rate, row.late_days)
    finally:
        container.close()


if __name__ == "__main__":
    main()

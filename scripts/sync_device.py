"""One-off sync of a single device from the command line.

Examples:
    python scripts/sync_device.py 192.168.1.201 --company acme
    python scripts/sync_device.py 192.168.1.201 --company acme --days 30
    python scripts/sync_device.py 192.168.1.201 --company acme --start 2024-01-01 --end 2024-03-15
"""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.timeclock_sync.timeclock_sync.common.datetime_utils import parse_iso_date
from src.timeclock_sync.timeclock_sync.container import build_container
from src.timeclock_sync.timeclock_sync.core.exceptions import DomainError
from src.timeclock_sync.timeclock_sync.sync.model import SyncMode


def _mode(args: argparse.Namespace) -> SyncMode:
    if args.start or args.end:
        if not (args.start and args.end):
            raise SystemExit("--start and --end must be given together")
        return SyncMode.forced_range(parse_iso_date(args.start), parse_iso_date(args.end))
    if args.days:
        return SyncMode.forced_days(args.days)
    return SyncMode.incremental()


def main() -> None:
    parser = argparse.ArgumentParser(description="Pull attendance from one time-clock terminal")
    parser.add_argument("ip")
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--company", default=None)
    parser.add_argument("--days", type=int, default=None)
    parser.add_argument("--start", default=None, help="YYYY-MM-DD")
    parser.add_argument("--end", default=None, help="YYYY-MM-DD")
    args = parser.parse_args()

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format="%(levelname)s [%(name)s] %(message)s")

    container = build_container(
        db_config=settings.DB_CONFIG,
        device_config=getattr(settings, "DEVICE_CONFIG", {}),
        sync_config=getattr(settings, "SYNC_CONFIG", {}),
    )
    try:
        if args.port is not None:
            connected = container.connections.connect(args.ip, args.port, company_id=args.company)
            if not connected.ok:
                print(json.dumps({"success": False, "error_code": connected.error_code, "message": str(connected.error)}))
                raise SystemExit(1)
        result = container.sync_coordinator.trigger_sync(args.ip, _mode(args), company_id=args.company)
    except DomainError as e:
        raise SystemExit(f"{e.code}: {e}")
    finally:
        container.close()

    print(json.dumps(result.to_dict(), indent=2))
    if not result.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()

"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_DEVICE_PORT = 4370
DEFAULT_DEVICE_PASSWORD = 0

CONNECT_TIMEOUT_SECONDS = 20
SECONDARY_CONNECT_TIMEOUT_SECONDS = 8
FETCH_TIMEOUT_SECONDS = 60
INFO_TIMEOUT_SECONDS = 8
REACHABILITY_TIMEOUT_SECONDS = 3

IDLE_CONNECTION_MINUTES = 30
REAPER_INTERVAL_SECONDS = 60

FIRST_SYNC_DAYS = 7
INCREMENTAL_OVERLAP_DAYS = 1
MAX_SINGLE_WINDOW_DAYS = 60
BATCH_WINDOW_DAYS = 7
SCHEDULED_SYNC_HOURS = 6
SYNC_WORKERS = 4

INGEST_BATCH_SIZE = 100

DEFAULT_CUTOFF = "09:00"

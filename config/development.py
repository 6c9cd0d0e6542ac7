import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timeclock_db"),
}

# Time-clock terminals (pyzk). Timeouts are in seconds.
DEVICE_CONFIG = {
    "port": int(os.getenv("DEVICE_PORT", "4370")),
    "password": int(os.getenv("DEVICE_PASSWORD", "0")),
    "connect_timeout": float(os.getenv("DEVICE_CONNECT_TIMEOUT", "20")),
    "secondary_timeout": float(os.getenv("DEVICE_SECONDARY_TIMEOUT", "8")),
    "fetch_timeout": float(os.getenv("DEVICE_FETCH_TIMEOUT", "60")),
    "reachability_timeout": float(os.getenv("DEVICE_REACHABILITY_TIMEOUT", "3")),
    "idle_minutes": int(os.getenv("DEVICE_IDLE_MINUTES", "30")),
}

SYNC_CONFIG = {
    "interval_hours": float(os.getenv("SYNC_INTERVAL_HOURS", "6")),
    "workers": int(os.getenv("SYNC_WORKERS", "4")),
    "batch_size": int(os.getenv("SYNC_BATCH_SIZE", "100")),
    "scheduled": bool(int(os.getenv("SYNC_SCHEDULED", "1"))),
    "default_company_id": os.getenv("DEFAULT_COMPANY_ID", ""),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

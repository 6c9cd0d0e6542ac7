import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timeclock_test"),
}

DEVICE_CONFIG = {
    "port": 4370,
    "password": 0,
    "connect_timeout": 2.0,
    "secondary_timeout": 1.0,
    "fetch_timeout": 5.0,
    "reachability_timeout": 1.0,
    "idle_minutes": 30,
}

SYNC_CONFIG = {
    "interval_hours": 6.0,
    "workers": 2,
    "batch_size": 100,
    "scheduled": False,
    "default_company_id": "test-company",
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

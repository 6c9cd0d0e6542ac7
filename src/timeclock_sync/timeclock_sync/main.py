from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .core.exceptions import DomainError, SyncAlreadyRunning, ValidationError
from .database.bootstrap import apply_schema, list_tables
from .devices.controller import register as register_devices
from .metrics.controller import register as register_metrics
from .settings.controller import register as register_settings
from .sync.controller import register as register_sync

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return jsonify({"success": False, "error_code": e.code, "message": str(e)}), 400

    @app.errorhandler(SyncAlreadyRunning)
    def handle_already_running(e: SyncAlreadyRunning):
        return jsonify({"success": False, "error_code": e.code, "message": str(e)}), 409

    @app.errorhandler(DomainError)
    def handle_domain(e: DomainError):
        return jsonify({"success": False, "error_code": e.code, "message": str(e)}), 422


def register_routes(app: Flask, container: Container) -> None:
    register_devices(app, container)
    register_sync(app, container)
    register_attendance(app, container)
    register_metrics(app, container)
    register_settings(app, container)


def create_app(container: Container | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    db_config = getattr(settings, "DB_CONFIG")
    sync_config = dict(getattr(settings, "SYNC_CONFIG", {}))
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    register_error_handlers(app)

    if container is not None:
        # Pre-built (e.g. in-memory) container: no database bootstrap, no background threads.
        register_routes(app, container)
        return app

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(
        db_config=db_config,
        device_config=getattr(settings, "DEVICE_CONFIG", {}),
        sync_config=sync_config,
    )
    register_routes(app, container)

    container.start(scheduled_sync=bool(sync_config.get("scheduled", True)))
    atexit.register(container.close)
    app.extensions["timeclock_container"] = container

    return app

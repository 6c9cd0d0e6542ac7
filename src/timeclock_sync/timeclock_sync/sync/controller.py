from __future__ import annotations

from flask import Flask, jsonify, request

from ..container import Container
from .model import SyncMode


def register(app: Flask, container: Container) -> None:
    coordinator = container.sync_coordinator

    @app.route("/api/sync/<ip>", methods=["POST"], endpoint="api_sync_trigger")
    def trigger(ip: str):
        data = request.get_json(silent=True) or {}
        mode = SyncMode.from_request(data)

        if data.get("background"):
            coordinator.submit_sync(ip, mode, company_id=data.get("company_id"))
            return jsonify({"success": True, "accepted": True, "device_ip": ip, **mode.to_dict()}), 202

        result = coordinator.trigger_sync(ip, mode, company_id=data.get("company_id"))
        return jsonify(result.to_dict())

    @app.route("/api/sync/<ip>/cancel", methods=["POST"], endpoint="api_sync_cancel")
    def cancel(ip: str):
        return jsonify({"success": coordinator.cancel_sync(ip), "device_ip": ip})

    @app.route("/api/sync/status", methods=["GET"], endpoint="api_sync_status")
    def status():
        return jsonify({"success": True, **coordinator.get_sync_status().to_dict()})

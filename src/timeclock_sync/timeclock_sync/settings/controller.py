from __future__ import annotations

from flask import Flask, jsonify, request

from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.settings_service

    @app.route("/api/settings/cutoff", methods=["GET"], endpoint="api_settings_cutoff")
    def get_cutoff():
        return jsonify(
            {
                "success": True,
                "settings": service.get_settings().to_dict(),
                "effective": service.get_cutoff_policy().to_dict(),
            }
        )

    @app.route("/api/settings/cutoff", methods=["PUT"], endpoint="api_settings_cutoff_update")
    def update_cutoff():
        data = request.get_json(silent=True) or {}
        settings = service.update_cutoff(
            use_custom_cutoff=bool(data.get("use_custom_cutoff", False)),
            cutoff_time=data.get("cutoff_time"),
            updated_by=data.get("updated_by"),
            description=data.get("description"),
        )
        return jsonify(
            {
                "success": True,
                "settings": settings.to_dict(),
                "effective": service.get_cutoff_policy().to_dict(),
            }
        )

    @app.route("/api/settings/device-work-time", methods=["PUT"], endpoint="api_settings_device_work_time")
    def update_device_work_time():
        data = request.get_json(silent=True) or {}
        settings = service.record_device_work_time(data.get("work_time"))
        return jsonify({"success": True, "settings": settings.to_dict()})

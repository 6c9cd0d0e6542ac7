from __future__ import annotations

from flask import Flask, jsonify, request

from ..container import Container


def _user_to_dict(user) -> dict:
    if isinstance(user, dict):
        return {k: v for k, v in user.items() if k != "password"}
    return {
        "uid": getattr(user, "uid", None),
        "user_id": getattr(user, "user_id", None),
        "name": getattr(user, "name", None),
        "privilege": getattr(user, "privilege", None),
        "card": getattr(user, "card", None),
    }


def register(app: Flask, container: Container) -> None:
    connections = container.connections

    @app.route("/api/devices", methods=["GET"], endpoint="api_devices_list")
    def list_devices():
        return jsonify({"success": True, "devices": [c.to_dict() for c in connections.list_connections()]})

    @app.route("/api/devices/connect", methods=["POST"], endpoint="api_devices_connect")
    def connect_device():
        data = request.get_json(silent=True) or {}
        result = connections.connect(data.get("ip"), data.get("port"), company_id=data.get("company_id"))
        current = result.value if result.ok else connections.status(data.get("ip"))
        return jsonify(
            {
                "success": result.ok,
                "connection": current.to_dict() if current else None,
                "error_code": result.error_code,
                "message": str(result.error) if result.error else None,
            }
        )

    @app.route("/api/devices/<ip>", methods=["GET"], endpoint="api_devices_status")
    def device_status(ip: str):
        current = connections.status(ip)
        if current is None:
            return jsonify({"success": False, "message": f"No connection entry for {ip}"}), 404
        return jsonify({"success": True, "connection": current.to_dict()})

    @app.route("/api/devices/<ip>/disconnect", methods=["POST"], endpoint="api_devices_disconnect")
    def disconnect_device(ip: str):
        return jsonify({"success": connections.disconnect(ip)})

    @app.route("/api/devices/<ip>/diagnose", methods=["GET"], endpoint="api_devices_diagnose")
    def diagnose_device(ip: str):
        report = container.diagnostics.diagnose(ip, request.args.get("port"))
        return jsonify({"success": True, "diagnosis": report.to_dict()})

    @app.route("/api/devices/<ip>/info", methods=["GET"], endpoint="api_devices_info")
    def device_info(ip: str):
        result = connections.device_info(ip)
        return jsonify({"success": result.ok, "info": result.value, "error_code": result.error_code})

    @app.route("/api/devices/<ip>/users", methods=["GET"], endpoint="api_devices_users")
    def device_users(ip: str):
        result = connections.fetch_users(ip)
        users = [_user_to_dict(u) for u in result.value] if result.ok else []
        return jsonify(
            {
                "success": result.ok,
                "users": users,
                "count": len(users),
                "error_code": result.error_code,
                "message": str(result.error) if result.error else None,
            }
        )

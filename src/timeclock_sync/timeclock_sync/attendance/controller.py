from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/events", methods=["GET"], endpoint="api_attendance_events")
    def list_events():
        today = now_local().date()
        start_s = request.args.get("start") or (today - timedelta(days=7)).strftime("%Y-%m-%d")
        end_s = request.args.get("end") or today.strftime("%Y-%m-%d")

        events = service.get_events(
            company_id=request.args.get("company_id"),
            start_date=parse_iso_date(start_s),
            end_date=parse_iso_date(end_s),
            device_ip=request.args.get("device_ip"),
            employee_id=request.args.get("employee_id"),
        )
        return jsonify({"success": True, "count": len(events), "events": [e.to_dict() for e in events]})

    @app.route("/api/attendance/last-sync/<ip>", methods=["GET"], endpoint="api_attendance_last_sync")
    def last_sync(ip: str):
        ts = service.get_last_sync(ip)
        return jsonify({"success": True, "device_ip": ip, "last_sync": ts.isoformat() if ts else None})

    @app.route("/api/attendance/stats", methods=["GET"], endpoint="api_attendance_stats")
    def sync_stats():
        stats = service.get_sync_stats(
            company_id=request.args.get("company_id"),
            device_ip=request.args.get("device_ip"),
        )
        return jsonify({"success": True, "stats": stats.to_dict()})

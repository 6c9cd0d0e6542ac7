from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..container import Container


def register(app: Flask, container: Container) -> None:
    engine = container.metrics_engine

    def _range():
        today = now_local().date()
        start_s = request.args.get("start") or today.replace(day=1).strftime("%Y-%m-%d")
        end_s = request.args.get("end") or today.strftime("%Y-%m-%d")
        return parse_iso_date(start_s), parse_iso_date(end_s)

    @app.route("/api/metrics/<employee_id>/rate", methods=["GET"], endpoint="api_metrics_rate")
    def attendance_rate(employee_id: str):
        start, end = _range()
        rate = engine.get_attendance_rate(
            company_id=request.args.get("company_id"),
            employee_id=employee_id,
            start_date=start,
            end_date=end,
        )
        return jsonify({"success": True, **rate.to_dict()})

    @app.route("/api/metrics/<employee_id>/lateness", methods=["GET"], endpoint="api_metrics_lateness")
    def lateness(employee_id: str):
        day_s = request.args.get("date") or now_local().date().strftime("%Y-%m-%d")
        result = engine.get_lateness(
            company_id=request.args.get("company_id"),
            employee_id=employee_id,
            day=parse_iso_date(day_s),
        )
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/api/metrics/<employee_id>/summary", methods=["GET"], endpoint="api_metrics_employee_summary")
    def employee_summary(employee_id: str):
        start, end = _range()
        summary = engine.employee_summary(
            company_id=request.args.get("company_id"),
            employee_id=employee_id,
            start_date=start,
            end_date=end,
        )
        return jsonify({"success": True, "summary": summary.to_dict()})

    @app.route("/api/metrics/company/<company_id>/summary", methods=["GET"], endpoint="api_metrics_company_summary")
    def company_summary(company_id: str):
        start, end = _range()
        rows = engine.company_summary(company_id=company_id, start_date=start, end_date=end)
        return jsonify(
            {
                "success": True,
                "company_id": company_id,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "employees": [r.to_dict() for r in rows],
            }
        )

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository


def _row_to_employee(row: Dict[str, Any]) -> Employee:
    return Employee(
        employee_id=str(row["employee_id"]),
        company_id=str(row["company_id"]),
        full_name=row["full_name"],
        department=row.get("department"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, company_id: str, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, company_id, full_name, department, is_active
                FROM employees
                WHERE company_id=%s AND employee_id=%s
                """,
                (company_id, employee_id),
            )
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def list_by_company(self, company_id: str, *, active_only: bool = True) -> Sequence[Employee]:
        sql = """
            SELECT employee_id, company_id, full_name, department, is_active
            FROM employees
            WHERE company_id=%s
        """
        if active_only:
            sql += " AND is_active=1"
        sql += " ORDER BY employee_id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (company_id,))
            return [_row_to_employee(r) for r in fetchall(cur)]

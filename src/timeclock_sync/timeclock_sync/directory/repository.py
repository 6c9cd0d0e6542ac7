from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee


class EmployeeRepository(Protocol):
    """Read-only view of the employee/company directory."""

    def get(self, *, company_id: str, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def list_by_company(self, company_id: str, *, active_only: bool = True) -> Sequence[Employee]:
        raise NotImplementedError

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Employee:
    """Directory entry. `employee_id` is the user id enrolled on the terminal.

    Note: Read-only here; the directory is maintained outside this service.
    """

    employee_id: str
    company_id: str
    full_name: str
    department: Optional[str] = None
    is_active: bool = True

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class Employee:
    """Domain entity: an employee record, the scope entity of a ceremony."""

    employee_id: str
    full_name: str
    user_id: Optional[str]
    email: Optional[str]
    dept_id: Optional[int]
    status: EmployeeStatus = EmployeeStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE

from __future__ import annotations

from typing import Optional

from ..core.enums import EmployeeStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Employee
from .repository import EmployeeRepository


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, user_id, full_name, email, dept_id, status
                FROM employees
                WHERE employee_id=%s
                """,
                (employee_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Employee(
                employee_id=str(r["employee_id"]),
                full_name=r["full_name"],
                user_id=r.get("user_id"),
                email=r.get("email"),
                dept_id=r.get("dept_id"),
                status=EmployeeStatus(r.get("status") or EmployeeStatus.ACTIVE.value),
            )

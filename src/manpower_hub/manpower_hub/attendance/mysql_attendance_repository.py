from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT attendance_id, employee_id, work_date, check_in, check_out, status
                FROM attendance
                WHERE employee_id=%s AND work_date=%s
                """,
                (employee_id, work_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return AttendanceRecord(
                attendance_id=int(r["attendance_id"]),
                employee_id=str(r["employee_id"]),
                work_date=r["work_date"],
                check_in=r["check_in"],
                check_out=r.get("check_out"),
                status=AttendanceStatus(r["status"]),
            )

    def create_time_in(
        self,
        *,
        employee_id: str,
        work_date: date,
        check_in: datetime,
        status: AttendanceStatus,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance(employee_id, work_date, check_in, status)
                    VALUES(%s,%s,%s,%s)
                    """,
                    (employee_id, work_date, check_in, status.value),
                )
                return int(cur.lastrowid)
        except IntegrityError as e:
            # Two concurrent time-ins: the unique (employee, date) key decides.
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise ValidationError("Already timed in today") from e
            raise

    def update_time_out(self, *, attendance_id: int, check_out: datetime, status: AttendanceStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET check_out=%s, status=%s
                WHERE attendance_id=%s AND check_out IS NULL
                """,
                (check_out, status.value, int(attendance_id)),
            )
            return cur.rowcount > 0

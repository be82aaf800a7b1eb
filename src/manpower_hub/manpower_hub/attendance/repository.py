from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_time_in(
        self,
        *,
        employee_id: str,
        work_date: date,
        check_in: datetime,
        status: AttendanceStatus,
    ) -> int:
        raise NotImplementedError

    def update_time_out(self, *, attendance_id: int, check_out: datetime, status: AttendanceStatus) -> bool:
        """Set check_out once; returns False if it was already set."""

        raise NotImplementedError

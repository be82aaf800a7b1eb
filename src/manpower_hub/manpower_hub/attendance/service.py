from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_local
from ..core.exceptions import ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Time-in / time-out bookkeeping.

    Callers are expected to have passed the biometric gate already; this
    service only enforces the attendance rules themselves.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
    ):
        self._attendance = attendance
        self._employees = employees
        self._factory = strategy_factory or AttendanceStrategyFactory()

    def _active_employee(self, employee_id: str) -> Employee:
        employee = self._employees.get_by_id(employee_id)
        if not employee:
            raise ValidationError("Employee does not exist")
        if not employee.is_active:
            raise ValidationError("Employee is not active")
        return employee

    def time_in(self, employee_id: str, *, now: datetime | None = None) -> AttendanceRecord:
        now = now or now_local()
        today = now.date()
        self._active_employee(employee_id)

        if self._attendance.get_for_employee_and_date(employee_id, today):
            raise ValidationError("Already timed in today")

        decision = self._factory.for_time_in(now=now).decide_time_in(now=now)
        attendance_id = self._attendance.create_time_in(
            employee_id=employee_id,
            work_date=today,
            check_in=now,
            status=decision.status,
        )
        logger.info("time-in employee=%s status=%s", employee_id, decision.status.value)
        return AttendanceRecord(
            attendance_id=attendance_id,
            employee_id=employee_id,
            work_date=today,
            check_in=now,
            check_out=None,
            status=decision.status,
        )

    def time_out(self, employee_id: str, *, now: datetime | None = None) -> AttendanceRecord:
        now = now or now_local()
        today = now.date()
        self._active_employee(employee_id)

        record = self._attendance.get_for_employee_and_date(employee_id, today)
        if not record:
            raise ValidationError("No time-in recorded today")
        if record.check_out is not None:
            raise ValidationError("Already timed out today")

        decision = self._factory.for_time_out(now=now).decide_time_out(now=now, current=record.status)
        if not self._attendance.update_time_out(
            attendance_id=record.attendance_id, check_out=now, status=decision.status
        ):
            raise ValidationError("Already timed out today")
        logger.info("time-out employee=%s", employee_id)
        return AttendanceRecord(
            attendance_id=record.attendance_id,
            employee_id=employee_id,
            work_date=today,
            check_in=record.check_in,
            check_out=now,
            status=decision.status,
        )

    def get_today(self, employee_id: str, *, now: Optional[datetime] = None) -> Optional[AttendanceRecord]:
        """Get today's attendance record for an employee"""
        now = now or now_local()
        return self._attendance.get_for_employee_and_date(employee_id, now.date())

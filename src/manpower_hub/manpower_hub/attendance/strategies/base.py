from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ...core.enums import AttendanceStatus


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide_time_in(self, *, now: datetime) -> StatusDecision:
        raise NotImplementedError

    def decide_time_out(self, *, now: datetime, current: AttendanceStatus) -> StatusDecision:
        # Leaving never changes how the day was classified at arrival.
        return StatusDecision(status=current)

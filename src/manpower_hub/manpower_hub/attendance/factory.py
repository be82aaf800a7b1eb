from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time

from ..common.datetime_utils import parse_clock_time
from ..core.constants import DEFAULT_TIME_IN_LATE_THRESHOLD
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules.

    Arriving exactly at ``late_threshold`` still counts as present.
    """

    late_threshold: time = field(default_factory=lambda: parse_clock_time(DEFAULT_TIME_IN_LATE_THRESHOLD))

    def for_time_in(self, *, now: datetime) -> AttendanceStrategy:
        if now.time() > self.late_threshold:
            return LateStrategy()
        return PresentStrategy()

    def for_time_out(self, *, now: datetime) -> AttendanceStrategy:
        return PresentStrategy()

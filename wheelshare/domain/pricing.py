"""
Trip Metering Tariff
====================

Formula
-------
Cost = round(Base_Cost + Minutes x Per_Minute_Rate)

* **Minutes** are whole, started minutes: ``ceil(elapsed / 60 s)``.
* Rounding is to the nearest whole MAD with ties going away from zero
  (6.5 -> 7), done on ``Decimal`` so the result is exact.
* **Mock distance** = Minutes x 100 m (no GPS).

Complexity: O(1) per calculation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

WHOLE_UNIT = Decimal("1")


def started_minutes(elapsed: timedelta) -> int:
    """Elapsed time as billable minutes (any started minute counts)."""
    return max(0, math.ceil(elapsed.total_seconds() / 60))


@dataclass(frozen=True)
class Tariff:
    base_cost: Decimal = Decimal("5.0")
    per_minute_rate: Decimal = Decimal("1.5")
    distance_meters_per_minute: int = 100

    def time_cost(self, minutes: int) -> Decimal:
        return minutes * self.per_minute_rate

    def cost_for(self, minutes: int) -> Decimal:
        raw = self.base_cost + self.time_cost(minutes)
        return raw.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)

    def distance_for(self, minutes: int) -> int:
        return minutes * self.distance_meters_per_minute


STANDARD_TARIFF = Tariff()


def format_distance(meters: int) -> str:
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{meters} m"


def format_duration(minutes: int) -> str:
    return "1 minute" if minutes == 1 else f"{minutes} minutes"

"""
Fare Settlement Engine  (Strategy Pattern)
==========================================

Formula
-------
Without trip timing the quoted ``estimated_fare`` is charged as-is.
With a start and end time:

  duration_fare = Base_Fare + ceil(minutes) x Per_Minute_Rate
  distance_fare = Base_Fare + Distance x Per_KM_Rate          (if distance known)
  Fare          = max(duration_fare, distance_fare) x Surge    (surge only if > 1)

The result is rounded half-up to a whole rupee.  The platform keeps a
fixed commission; the remainder is credited to the driver.

Complexity: O(1) per fare.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def calculate(self, quantity: float, base_fare: float) -> float: ...


class DurationPricing(PricingStrategy):
    def __init__(self, per_minute_rate: float = 2.0):
        self.per_minute_rate = per_minute_rate

    def calculate(self, quantity: float, base_fare: float) -> float:
        return base_fare + quantity * self.per_minute_rate


class DistancePricing(PricingStrategy):
    def __init__(self, per_km_rate: float = 8.0):
        self.per_km_rate = per_km_rate

    def calculate(self, quantity: float, base_fare: float) -> float:
        return base_fare + quantity * self.per_km_rate


@dataclass(frozen=True)
class Payout:
    fare: float
    driver_earnings: float
    platform_commission: float


# ── Engine facade ─────────────────────────────────────────────────────


class FareCalculator:
    """High-level API used by the settlement worker."""

    def __init__(
        self,
        base_fare: float = 25.0,
        per_minute_rate: float = 2.0,
        per_km_rate: float = 8.0,
        commission: float = 0.20,
    ):
        self.base_fare = base_fare
        self.per_minute_rate = per_minute_rate
        self.per_km_rate = per_km_rate
        self.commission = commission

    @staticmethod
    def duration_minutes(start: datetime, end: datetime) -> int:
        return math.ceil((end - start).total_seconds() / 60)

    def final_fare(
        self,
        estimated_fare: Optional[float] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        distance_km: Optional[float] = None,
        base_fare: Optional[float] = None,
        per_minute_rate: Optional[float] = None,
        per_km_rate: Optional[float] = None,
        surge_factor: Optional[float] = None,
    ) -> float:
        """Per-ride overrides (``base_fare`` etc.) win over the defaults."""
        if not (start_time and end_time):
            return estimated_fare or 0

        base = base_fare or self.base_fare
        minutes = self.duration_minutes(start_time, end_time)
        fare = DurationPricing(per_minute_rate or self.per_minute_rate).calculate(
            minutes, base
        )

        if distance_km:
            distance_fare = DistancePricing(per_km_rate or self.per_km_rate).calculate(
                distance_km, base
            )
            fare = max(fare, distance_fare)

        if surge_factor and surge_factor > 1:
            fare *= surge_factor

        return float(math.floor(fare + 0.5))

    def split(self, fare: float) -> Payout:
        commission = fare * self.commission
        return Payout(
            fare=fare,
            driver_earnings=fare - commission,
            platform_commission=commission,
        )

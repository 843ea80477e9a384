"""
Fare Estimate  (Strategy Pattern)
=================================

Formula
-------
Fare = Base_Fare + Distance x Rate_Per_KM + Duration x Rate_Per_Minute
       + (Passengers - 1) x Rate_Per_Extra_Passenger

Drivers see the estimate while creating a ride; the price they publish
per seat is their own choice.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class FareRates:
    base_fare: float = 30.0
    rate_per_km: float = 0.5
    rate_per_minute: float = 0.25
    rate_per_extra_passenger: float = 2.0


# ── Strategy hierarchy ────────────────────────────────────────────────


class FareStrategy(ABC):
    @abstractmethod
    def calculate(
        self, distance_km: float, duration_min: float, rates: FareRates
    ) -> float: ...


class DistanceTimeFare(FareStrategy):
    def calculate(
        self, distance_km: float, duration_min: float, rates: FareRates
    ) -> float:
        return (
            rates.base_fare
            + distance_km * rates.rate_per_km
            + duration_min * rates.rate_per_minute
        )


class SharedRideFare(DistanceTimeFare):
    """Adds a flat surcharge for every passenger beyond the first."""

    def __init__(self, passengers: int = 1):
        self.passengers = max(1, passengers)

    def calculate(
        self, distance_km: float, duration_min: float, rates: FareRates
    ) -> float:
        raw = super().calculate(distance_km, duration_min, rates)
        return raw + (self.passengers - 1) * rates.rate_per_extra_passenger


# ── Engine facade ─────────────────────────────────────────────────────


class FareEstimator:
    """High-level API used by the ride creation endpoint."""

    def __init__(self, rates: FareRates | None = None):
        self.rates = rates or FareRates()

    def estimate(
        self,
        distance_km: float,
        duration_min: float,
        passengers: int = 1,
        base_fare: float | None = None,
    ) -> float:
        rates = self.rates
        if base_fare is not None:
            rates = FareRates(
                base_fare=base_fare,
                rate_per_km=rates.rate_per_km,
                rate_per_minute=rates.rate_per_minute,
                rate_per_extra_passenger=rates.rate_per_extra_passenger,
            )
        strategy = SharedRideFare(passengers)
        return round(strategy.calculate(distance_km, duration_min, rates), 2)
